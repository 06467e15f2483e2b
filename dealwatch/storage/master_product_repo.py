# dealwatch/storage/master_product_repo.py

"""Persistence for canonical master products."""

import logging
import sqlite3

from dealwatch.models.master_product import MasterProduct
from dealwatch.storage.database import (
    Database,
    from_db_time,
    to_db_time,
    utc_now,
)

logger = logging.getLogger("dealwatch.storage")

_COLUMNS = (
    "id, region, platform, standard_title, price, status, "
    "trust_score, create_time, update_time"
)


def _row_to_master(row: sqlite3.Row) -> MasterProduct:
    return MasterProduct(
        id=row["id"],
        region=row["region"],
        platform=row["platform"],
        standard_title=row["standard_title"],
        price=row["price"],
        status=row["status"],
        trust_score=row["trust_score"],
        create_time=from_db_time(row["create_time"]),
        update_time=from_db_time(row["update_time"]),
    )


class MasterProductRepository:
    """SQLite-backed master catalog."""

    def __init__(self, db: Database) -> None:
        self._db = db

    # ── Lookups ──────────────────────────────────────────

    def find_by_id(self, product_id: str) -> MasterProduct | None:
        """Return the master with *product_id*, or ``None``."""
        row = self._db.fetch_one(
            f"SELECT {_COLUMNS} FROM master_products WHERE id = ?",
            (product_id,),
            what="get master product",
        )
        return _row_to_master(row) if row is not None else None

    def find_by_region(self, region: str) -> list[MasterProduct]:
        """Return every master in *region*, in insertion order."""
        rows = self._db.fetch_all(
            f"SELECT {_COLUMNS} FROM master_products "
            "WHERE region = ? ORDER BY rowid",
            (region,),
            what="list master products by region",
        )
        return [_row_to_master(r) for r in rows]

    def list_all(self) -> list[MasterProduct]:
        """Return the whole catalog, in insertion order."""
        rows = self._db.fetch_all(
            f"SELECT {_COLUMNS} FROM master_products "
            "ORDER BY rowid",
            what="list all master products",
        )
        return [_row_to_master(r) for r in rows]

    # ── Writes ───────────────────────────────────────────

    def create(self, product: MasterProduct) -> None:
        """Insert *product*, stamping create/update times."""
        now = utc_now()
        product.create_time = product.create_time or now
        product.update_time = product.update_time or now
        self._db.execute(
            f"INSERT INTO master_products ({_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                product.id,
                product.region,
                product.platform,
                product.standard_title,
                product.price,
                product.status,
                product.trust_score,
                to_db_time(product.create_time),
                to_db_time(product.update_time),
            ),
            what="create master product",
        )
        logger.debug(
            "Created master %s '%s' at %.2f",
            product.id,
            product.standard_title,
            product.price,
        )

    def update(self, product: MasterProduct) -> None:
        """Persist price, status, title and trust score; stamp update time."""
        product.update_time = utc_now()
        self._db.execute(
            "UPDATE master_products SET "
            "region = ?, platform = ?, standard_title = ?, price = ?, "
            "status = ?, trust_score = ?, update_time = ? "
            "WHERE id = ?",
            (
                product.region,
                product.platform,
                product.standard_title,
                product.price,
                product.status,
                product.trust_score,
                to_db_time(product.update_time),
                product.id,
            ),
            what="update master product",
        )

    def delete(self, product_id: str) -> None:
        """Remove the master with *product_id* if present."""
        self._db.execute(
            "DELETE FROM master_products WHERE id = ?",
            (product_id,),
            what="delete master product",
        )
