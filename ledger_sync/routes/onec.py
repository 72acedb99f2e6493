# routes/onec.py
# Batch import endpoints called by the ledger system
from typing import Any, Dict
from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session
import logging

from ledger_sync.database import get_db
from ledger_sync.models.sync import SyncEntity
from ledger_sync.schemas.common import BatchResponse
from ledger_sync.schemas.onec import (
    AgreementsBatch, CounterpartiesBatch, NomenclatureBatch, ProductPricesBatch,
    SpecialPricesBatch, StockBatch, WarehousesBatch,
)
from ledger_sync.services.agreements import reconcile_agreements
from ledger_sync.services.counterparties import reconcile_counterparties
from ledger_sync.services.nomenclature import reconcile_nomenclature
from ledger_sync.services.prices import reconcile_product_prices, reconcile_special_prices
from ledger_sync.services.reconciler import run_batch
from ledger_sync.services.stock import reconcile_stock, reconcile_warehouses
from ledger_sync.services.sync_ledger import SyncRunLedger, get_sync_ledger
from ledger_sync.utils.onec_auth import require_onec_secret

router = APIRouter(prefix="/api/1c", tags=["1C exchange"], dependencies=[Depends(require_onec_secret)])
logger = logging.getLogger(__name__)


# Context stored on the sync run
def request_meta(request: Request) -> Dict[str, Any]:
    return {"ip": request.client.host if request.client else None, "path": request.url.path}


@router.post("/nomenclature/batch", response_model=BatchResponse, response_model_exclude_none=True)
def nomenclature_batch(
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    ledger: SyncRunLedger = Depends(get_sync_ledger),
):
    return run_batch(db, ledger, SyncEntity.NOMENCLATURE, NomenclatureBatch, payload,
                     reconcile_nomenclature, meta=request_meta(request))


@router.post("/stock/batch", response_model=BatchResponse, response_model_exclude_none=True)
def stock_batch(
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    ledger: SyncRunLedger = Depends(get_sync_ledger),
):
    return run_batch(db, ledger, SyncEntity.STOCK, StockBatch, payload,
                     reconcile_stock, meta=request_meta(request))


@router.post("/counterparties/batch", response_model=BatchResponse, response_model_exclude_none=True)
def counterparties_batch(
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    ledger: SyncRunLedger = Depends(get_sync_ledger),
):
    return run_batch(db, ledger, SyncEntity.COUNTERPARTIES, CounterpartiesBatch, payload,
                     reconcile_counterparties, meta=request_meta(request))


@router.post("/warehouses/batch", response_model=BatchResponse, response_model_exclude_none=True)
def warehouses_batch(
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    ledger: SyncRunLedger = Depends(get_sync_ledger),
):
    return run_batch(db, ledger, SyncEntity.WAREHOUSES, WarehousesBatch, payload,
                     reconcile_warehouses, meta=request_meta(request))


@router.post("/agreements/batch", response_model=BatchResponse, response_model_exclude_none=True)
def agreements_batch(
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    ledger: SyncRunLedger = Depends(get_sync_ledger),
):
    return run_batch(db, ledger, SyncEntity.AGREEMENTS, AgreementsBatch, payload,
                     reconcile_agreements, meta=request_meta(request))


@router.post("/product-prices/batch", response_model=BatchResponse, response_model_exclude_none=True)
def product_prices_batch(
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    ledger: SyncRunLedger = Depends(get_sync_ledger),
):
    return run_batch(db, ledger, SyncEntity.PRODUCT_PRICES, ProductPricesBatch, payload,
                     reconcile_product_prices, meta=request_meta(request))


@router.post("/special-prices/batch", response_model=BatchResponse, response_model_exclude_none=True)
def special_prices_batch(
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    ledger: SyncRunLedger = Depends(get_sync_ledger),
):
    return run_batch(db, ledger, SyncEntity.SPECIAL_PRICES, SpecialPricesBatch, payload,
                     reconcile_special_prices, meta=request_meta(request))
