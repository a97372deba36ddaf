# orderdesk/catalog.py
"""
Menu categories, menu items and tables.

Thin CRUD over the store. Orders never hold live references into the
catalog: deleting a menu item or a table nulls the reference on existing order
rows and leaves their name/number snapshots untouched.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .errors import NotFound, ValidationError
from .models import DiningTable, MenuCategory, MenuItem, Order, OrderItem
from .schemas import (
    CategoryIn,
    CategoryOut,
    CategoryPatch,
    MenuItemIn,
    MenuItemOut,
    MenuItemPatch,
    TableIn,
    TableOut,
    TablePatch,
)
from .store import OrderStore

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"


def _apply_patch(row: Any, patch: BaseModel) -> None:
    for key, value in patch.model_dump(exclude_unset=True).items():
        setattr(row, key, value)


# -------------------
# Seed data
# -------------------
def load_seed_catalog(path: Path | None = None) -> Dict[str, Any]:
    catalog_path = path or Path(os.getenv("SEED_CATALOG", str(DATA_DIR / "seed_catalog.json")))

    if not catalog_path.exists():
        raise FileNotFoundError(f"Seed catalog not found: {catalog_path}")

    try:
        return json.loads(catalog_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {catalog_path}: {e}") from e


def seed_catalog(store: OrderStore, catalog: Dict[str, Any]) -> Dict[str, int]:
    """Load categories (with nested items) and tables into an empty store."""
    counts = {"categories": 0, "menu_items": 0, "tables": 0}

    with store.transaction() as db:
        if db.query(MenuCategory).count() or db.query(DiningTable).count():
            return counts

        now = store.now()
        for c in catalog.get("categories") or []:
            if not isinstance(c, dict):
                continue
            name = str(c.get("name") or "").strip()
            service_type = str(c.get("service_type") or "").strip()
            if not name or not service_type:
                continue

            cat = MenuCategory(name=name, service_type=service_type)
            db.add(cat)
            db.flush()
            counts["categories"] += 1

            for it in c.get("items") or []:
                if not isinstance(it, dict) or not it.get("name"):
                    continue
                db.add(
                    MenuItem(
                        name=str(it["name"]).strip(),
                        description=str(it.get("description") or ""),
                        price=str(it.get("price") or "0"),
                        image=it.get("image"),
                        category_id=cat.id,
                        service_type=service_type,
                        available=bool(it.get("available", True)),
                        created_at=now,
                    )
                )
                counts["menu_items"] += 1

        for t in catalog.get("tables") or []:
            if not isinstance(t, dict) or not t.get("number"):
                continue
            db.add(
                DiningTable(
                    number=str(t["number"]),
                    name=str(t.get("name") or f"Table {t['number']}"),
                    table_type=str(t.get("type") or "table"),
                    status=str(t.get("status") or "available"),
                    created_at=now,
                )
            )
            counts["tables"] += 1

    logger.info(
        f"Seeded {counts['categories']} categories, {counts['menu_items']} menu items, {counts['tables']} tables"
    )
    return counts


# -------------------
# Categories
# -------------------
def list_categories(store: OrderStore, service_type: Optional[str] = None) -> List[CategoryOut]:
    with store.transaction() as db:
        q = db.query(MenuCategory)
        if service_type:
            q = q.filter(MenuCategory.service_type == service_type)
        return [CategoryOut.model_validate(c) for c in q.order_by(MenuCategory.id).all()]


def create_category(store: OrderStore, data: CategoryIn) -> CategoryOut:
    with store.transaction() as db:
        cat = MenuCategory(**data.model_dump())
        db.add(cat)
        db.flush()
        return CategoryOut.model_validate(cat)


def update_category(store: OrderStore, category_id: int, patch: CategoryPatch) -> CategoryOut:
    with store.transaction() as db:
        cat = db.get(MenuCategory, category_id)
        if not cat:
            raise NotFound("Category not found")
        _apply_patch(cat, patch)
        db.flush()
        return CategoryOut.model_validate(cat)


def delete_category(store: OrderStore, category_id: int) -> None:
    with store.transaction() as db:
        cat = db.get(MenuCategory, category_id)
        if not cat:
            raise NotFound("Category not found")
        db.query(MenuItem).filter(MenuItem.category_id == category_id).update(
            {MenuItem.category_id: None}, synchronize_session=False
        )
        db.delete(cat)


# -------------------
# Menu items
# -------------------
def list_menu_items(
    store: OrderStore,
    service_type: Optional[str] = None,
    category_id: Optional[int] = None,
) -> List[MenuItemOut]:
    with store.transaction() as db:
        q = db.query(MenuItem)
        if service_type:
            q = q.filter(MenuItem.service_type == service_type)
        if category_id is not None:
            q = q.filter(MenuItem.category_id == category_id)
        return [MenuItemOut.model_validate(m) for m in q.order_by(MenuItem.id).all()]


def get_menu_item(store: OrderStore, item_id: int) -> MenuItemOut:
    with store.transaction() as db:
        item = db.get(MenuItem, item_id)
        if not item:
            raise NotFound("Menu item not found")
        return MenuItemOut.model_validate(item)


def create_menu_item(store: OrderStore, data: MenuItemIn) -> MenuItemOut:
    with store.transaction() as db:
        if data.category_id is not None and not db.get(MenuCategory, data.category_id):
            raise ValidationError(f"Category {data.category_id} does not exist")
        item = MenuItem(**data.model_dump(), created_at=store.now())
        db.add(item)
        db.flush()
        return MenuItemOut.model_validate(item)


def update_menu_item(store: OrderStore, item_id: int, patch: MenuItemPatch) -> MenuItemOut:
    with store.transaction() as db:
        item = db.get(MenuItem, item_id)
        if not item:
            raise NotFound("Menu item not found")
        if patch.category_id is not None and not db.get(MenuCategory, patch.category_id):
            raise ValidationError(f"Category {patch.category_id} does not exist")
        _apply_patch(item, patch)
        db.flush()
        return MenuItemOut.model_validate(item)


def delete_menu_item(store: OrderStore, item_id: int) -> None:
    with store.transaction() as db:
        item = db.get(MenuItem, item_id)
        if not item:
            raise NotFound("Menu item not found")
        db.query(OrderItem).filter(OrderItem.menu_item_id == item_id).update(
            {OrderItem.menu_item_id: None}, synchronize_session=False
        )
        db.delete(item)


# -------------------
# Tables and rooms
# -------------------
def list_tables(store: OrderStore, table_type: Optional[str] = None) -> List[TableOut]:
    with store.transaction() as db:
        q = db.query(DiningTable)
        if table_type:
            q = q.filter(DiningTable.table_type == table_type)
        return [TableOut.model_validate(t) for t in q.order_by(DiningTable.id).all()]


def get_table(store: OrderStore, table_id: int) -> TableOut:
    with store.transaction() as db:
        table = db.get(DiningTable, table_id)
        if not table:
            raise NotFound("Table not found")
        return TableOut.model_validate(table)


def get_table_by_number(store: OrderStore, number: str) -> TableOut:
    with store.transaction() as db:
        table = db.query(DiningTable).filter(DiningTable.number == number).first()
        if not table:
            raise NotFound("Table not found")
        return TableOut.model_validate(table)


def create_table(store: OrderStore, data: TableIn) -> TableOut:
    with store.transaction() as db:
        if db.query(DiningTable).filter(DiningTable.number == data.number).first():
            raise ValidationError(f"Table number {data.number} already exists")
        table = DiningTable(**data.model_dump(), created_at=store.now())
        db.add(table)
        db.flush()
        return TableOut.model_validate(table)


def update_table(store: OrderStore, table_id: int, patch: TablePatch) -> TableOut:
    with store.transaction() as db:
        table = db.get(DiningTable, table_id)
        if not table:
            raise NotFound("Table not found")
        if patch.number is not None and patch.number != table.number:
            if db.query(DiningTable).filter(DiningTable.number == patch.number).first():
                raise ValidationError(f"Table number {patch.number} already exists")
        _apply_patch(table, patch)
        db.flush()
        return TableOut.model_validate(table)


def delete_table(store: OrderStore, table_id: int) -> None:
    with store.transaction() as db:
        table = db.get(DiningTable, table_id)
        if not table:
            raise NotFound("Table not found")
        # orders keep their table_number for display
        db.query(Order).filter(Order.table_id == table_id).update(
            {Order.table_id: None}, synchronize_session=False
        )
        db.delete(table)
