from fastapi import APIRouter, Depends, HTTPException
from access_control import Action, ObjectType
from auth import AccessGrant, require_access
from database import delete_row, find_one, get_db, insert_row, record_audit_event, update_row
from models import InventoryItemCreate, InventoryItemUpdate

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("/")
def get_inventory(
    low_stock: bool = False,
    access: AccessGrant = Depends(require_access(ObjectType.INVENTORY, Action.READ)),
):
    sql = "SELECT * FROM inventory_items"
    if low_stock:
        sql += " WHERE quantity <= minimum_threshold"
    with get_db() as conn:
        items = [dict(row) for row in conn.execute(sql + " ORDER BY name").fetchall()]
    return {"items": items}


@router.get("/{item_id}")
def get_item(item_id: int, access: AccessGrant = Depends(require_access(ObjectType.INVENTORY, Action.READ))):
    item = find_one("inventory_items", item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    return item


@router.post("/", status_code=201)
def create_item(
    item: InventoryItemCreate,
    access: AccessGrant = Depends(require_access(ObjectType.INVENTORY, Action.CREATE)),
):
    created = insert_row("inventory_items", item.model_dump())
    record_audit_event(access.actor.id, "CREATE", "INVENTORY_ITEM", created["id"], new_values=created)
    return created


@router.put("/{item_id}")
def update_item(
    item_id: int,
    changes: InventoryItemUpdate,
    access: AccessGrant = Depends(require_access(ObjectType.INVENTORY, Action.UPDATE)),
):
    data = changes.model_dump(exclude_none=True)
    item = update_row("inventory_items", item_id, data)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    record_audit_event(access.actor.id, "UPDATE", "INVENTORY_ITEM", item_id, new_values=data)
    return item


@router.delete("/{item_id}", status_code=204)
def delete_item(item_id: int, access: AccessGrant = Depends(require_access(ObjectType.INVENTORY, Action.DELETE))):
    if not delete_row("inventory_items", item_id):
        raise HTTPException(status_code=404, detail="Inventory item not found")
    record_audit_event(access.actor.id, "DELETE", "INVENTORY_ITEM", item_id)
