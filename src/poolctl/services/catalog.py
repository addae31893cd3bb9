"""CatalogService — store products and receiving banks."""

from __future__ import annotations

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from poolctl.domain.models import Bank, Product
from poolctl.services.base import BaseService
from poolctl.services.result import VALIDATION_FAILED, ServiceResult
from poolctl.services.telemetry import traced


class CatalogService(BaseService):
    """Products the replenishment scan can offer, and banks payments land in."""

    @traced
    def add_product(
        self,
        name: str,
        *,
        price: float,
        stock: int = 0,
        description: str = "",
    ) -> ServiceResult:
        op = "add_product"
        try:
            draft = Product(name=name, price=price, stock=stock, description=description)
        except ValidationError as exc:
            return self._fail(op, VALIDATION_FAILED, str(exc))
        try:
            with self._store.transaction() as txn:
                product = txn.insert_product(draft)
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)
        return ServiceResult(ok=True, op=op, data=product.model_dump(mode="json"))

    @traced
    def list_products(self) -> ServiceResult:
        with self._store.read() as txn:
            items = txn.list_products()
        return ServiceResult(
            ok=True,
            op="list_products",
            data={"count": len(items), "items": [p.model_dump(mode="json") for p in items]},
        )

    @traced
    def add_bank(self, name: str, *, pix_key: str | None = None) -> ServiceResult:
        op = "add_bank"
        if not name.strip():
            return self._fail(op, VALIDATION_FAILED, "Bank name is required")
        try:
            with self._store.transaction() as txn:
                bank = txn.insert_bank(Bank(name=name.strip(), pix_key=pix_key))
        except SQLAlchemyError as exc:
            return self._commit_failed(op, exc)
        return ServiceResult(ok=True, op=op, data=bank.model_dump(mode="json"))

    @traced
    def list_banks(self) -> ServiceResult:
        with self._store.read() as txn:
            items = txn.list_banks()
        return ServiceResult(
            ok=True,
            op="list_banks",
            data={"count": len(items), "items": [b.model_dump(mode="json") for b in items]},
        )
