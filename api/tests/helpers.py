from sqlalchemy import func, select

from receipt_hub.db_models import Product, ReceiptItem


async def stock_of(db, product_id):
    result = await db.execute(select(Product.inventory).where(Product.id == product_id))
    return result.scalar_one()


async def count_items(db, receipt_id):
    result = await db.execute(
        select(func.count()).select_from(ReceiptItem).where(ReceiptItem.receipt_id == receipt_id)
    )
    return result.scalar_one()


def item_payload(product, quantity=1, inventory=None, actual_inventory=None, cost_price=None):
    return {
        "product_id": product.id,
        "product_code": product.product_code,
        "product_name": product.product_name,
        "quantity": quantity,
        "inventory": inventory if inventory is not None else product.inventory,
        "actual_inventory": actual_inventory if actual_inventory is not None else product.inventory,
        "cost_price": cost_price if cost_price is not None else product.cost_price,
    }
