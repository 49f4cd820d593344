"""
Tool handlers: one coroutine per catalog entry.

Handlers receive already-validated arguments and run only after the gateway has
confirmed the seller is authenticated. Each one shapes a single SellerApi call
and renders the JSON reply into a fixed text template.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .api import SellerApi
from .catalog import (
    CreateProductArgs,
    GetAnalyticsArgs,
    GetOrderArgs,
    GetProductArgs,
    GetReturnsArgs,
    ListOrdersArgs,
    ListProductsArgs,
    ProcessReturnArgs,
    UpdateInventoryArgs,
    UpdateOrderStatusArgs,
    UpdateProductArgs,
)

Handler = Callable[[SellerApi, Any], Awaitable[str]]


def _as_dict(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


def _num(value: Any) -> Any:
    """Drop a trailing .0 so 999.0 renders as 999."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _money(value: Any) -> str:
    return f"₹{_num(value if value is not None else 0)}"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _date(value: Any) -> str:
    parsed = _parse_datetime(value)
    return parsed.strftime("%d %b %Y") if parsed else str(value or "N/A")


def _datetime(value: Any) -> str:
    parsed = _parse_datetime(value)
    return parsed.strftime("%d %b %Y %H:%M") if parsed else str(value or "N/A")


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%d %b %Y %H:%M UTC")


def _period(args: Any) -> str:
    return f"Period: {args.from_date or 'Start'} to {args.to_date or 'Now'}"


def _params(**values: Any) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


# ---------------- Products ----------------
async def list_products(api: SellerApi, args: ListProductsArgs) -> str:
    params = _params(
        status=args.status if args.status != "all" else None,
        category=args.category,
        limit=args.limit,
        offset=args.offset,
    )
    data = _as_dict(await api.call(args.seller_id, "GET", "/products", params=params))
    products: List[Dict[str, Any]] = data.get("products") or []

    entries = [
        f"**{p.get('name')}** (SKU: {p.get('sku')})\n"
        f"   Brand: {p.get('brand')}\n"
        f"   Category: {p.get('category')}\n"
        f"   MRP: {_money(p.get('mrp'))} | Selling: {_money(p.get('selling_price'))}\n"
        f"   Inventory: {p.get('inventory')} units\n"
        f"   Status: {p.get('status')}\n"
        f"   ID: {p.get('id')}"
        for p in products
    ]
    body = "\n\n".join(entries) or "No products found"
    return f"**Myntra Products** ({len(products)} of {data.get('total') or 0})\n\n{body}"


async def get_product(api: SellerApi, args: GetProductArgs) -> str:
    data = _as_dict(await api.call(args.seller_id, "GET", f"/products/{args.product_id}"))

    mrp = data.get("mrp")
    selling_price = data.get("selling_price")
    if isinstance(mrp, (int, float)) and isinstance(selling_price, (int, float)) and mrp > 0:
        discount = f"{round((mrp - selling_price) / mrp * 100)}%"
    else:
        discount = "N/A"

    info = [
        f"**{data.get('name')}**",
        f"SKU: {data.get('sku')}",
        f"Brand: {data.get('brand')}",
        f"Category: {data.get('category')}",
        f"Description: {data.get('description') or 'N/A'}",
        f"MRP: {_money(mrp)}",
        f"Selling Price: {_money(selling_price)}",
        f"Discount: {discount}",
        f"Inventory: {data.get('inventory')} units",
        f"Status: {data.get('status')}",
        f"Views: {data.get('views') or 0}",
        f"Orders: {data.get('orders_count') or 0}",
        f"Rating: {data.get('rating') or 'N/A'} ({data.get('reviews_count') or 0} reviews)",
    ]
    images = data.get("images") or []
    if images:
        info.append(f"Images: {len(images)} uploaded")
    return "\n".join(info)


async def create_product(api: SellerApi, args: CreateProductArgs) -> str:
    body = {
        "sku": args.sku,
        "name": args.name,
        "brand": args.brand,
        "category": args.category,
        "description": args.description,
        "mrp": args.mrp,
        "selling_price": args.selling_price,
        "inventory": args.inventory,
        "images": list(args.images),
    }
    data = _as_dict(await api.call(args.seller_id, "POST", "/products", body=body))
    return (
        "**Product Created Successfully!**\n\n"
        f"Product: {data.get('name', args.name)}\n"
        f"SKU: {data.get('sku', args.sku)}\n"
        f"ID: {data.get('id')}\n"
        f"Status: {data.get('status')}\n\n"
        "Note: Product may need approval before going live."
    )


async def update_product(api: SellerApi, args: UpdateProductArgs) -> str:
    data = _as_dict(
        await api.call(args.seller_id, "PATCH", f"/products/{args.product_id}", body=dict(args.updates))
    )
    return (
        "**Product Updated!**\n\n"
        f"Product ID: {args.product_id}\n"
        f"Updated fields: {', '.join(args.updates)}\n"
        f"Status: {data.get('status')}"
    )


async def update_inventory(api: SellerApi, args: UpdateInventoryArgs) -> str:
    await api.call(
        args.seller_id,
        "PATCH",
        f"/products/{args.product_id}/inventory",
        body={"quantity": args.quantity},
    )
    return (
        "**Inventory Updated!**\n\n"
        f"Product ID: {args.product_id}\n"
        f"New Quantity: {args.quantity} units\n"
        f"Updated: {_now()}"
    )


# ---------------- Orders ----------------
async def list_orders(api: SellerApi, args: ListOrdersArgs) -> str:
    params = _params(
        status=args.status if args.status != "all" else None,
        from_date=args.from_date,
        to_date=args.to_date,
        limit=args.limit,
    )
    data = _as_dict(await api.call(args.seller_id, "GET", "/orders", params=params))
    orders: List[Dict[str, Any]] = data.get("orders") or []

    entries = [
        f"**Order #{o.get('order_id')}**\n"
        f"   Customer: {o.get('customer_name')}\n"
        f"   Product: {o.get('product_name')} (x{o.get('quantity')})\n"
        f"   Amount: {_money(o.get('total_amount'))}\n"
        f"   Status: {o.get('status')}\n"
        f"   Date: {_date(o.get('order_date'))}\n"
        f"   Payment: {o.get('payment_status')}"
        for o in orders
    ]
    body = "\n\n".join(entries) or "No orders found"
    return f"**Myntra Orders** ({len(orders)} of {data.get('total') or 0})\n\n{body}"


async def get_order(api: SellerApi, args: GetOrderArgs) -> str:
    data = _as_dict(await api.call(args.seller_id, "GET", f"/orders/{args.order_id}"))
    address = _as_dict(data.get("shipping_address"))
    quantity = data.get("quantity")

    info = [
        f"**Order #{data.get('order_id', args.order_id)}**",
        "\n**Customer Details:**",
        f"Name: {data.get('customer_name')}",
        f"Phone: {data.get('customer_phone')}",
        f"Email: {data.get('customer_email')}",
        "\n**Shipping Address:**",
        f"{address.get('line1', '')}",
        f"{address.get('city', '')}, {address.get('state', '')} - {address.get('pincode', '')}",
        "\n**Order Details:**",
        f"Product: {data.get('product_name')}",
        f"SKU: {data.get('product_sku')}",
        f"Quantity: {quantity}",
        f"Price: {_money(data.get('unit_price'))} x {quantity} = {_money(data.get('subtotal'))}",
        f"Discount: -{_money(data.get('discount'))}",
        f"Shipping: {_money(data.get('shipping_charge'))}",
        f"**Total Amount: {_money(data.get('total_amount'))}**",
        "\n**Status:**",
        f"Order Status: {data.get('status')}",
        f"Payment Status: {data.get('payment_status')}",
        f"Order Date: {_datetime(data.get('order_date'))}",
    ]
    if data.get("tracking_id"):
        info.append(f"Tracking ID: {data['tracking_id']}")
        info.append(f"Courier: {data.get('courier_partner') or 'N/A'}")
    return "\n".join(info)


async def update_order_status(api: SellerApi, args: UpdateOrderStatusArgs) -> str:
    body = _params(status=args.status, tracking_id=args.tracking_id, courier_partner=args.courier_partner)
    await api.call(args.seller_id, "PATCH", f"/orders/{args.order_id}/status", body=body)

    lines = [
        "**Order Status Updated!**",
        "",
        f"Order ID: {args.order_id}",
        f"New Status: {args.status}",
    ]
    if args.tracking_id:
        lines.append(f"Tracking ID: {args.tracking_id}")
    lines.append(f"Updated: {_now()}")
    return "\n".join(lines)


# ---------------- Returns ----------------
async def get_returns(api: SellerApi, args: GetReturnsArgs) -> str:
    params = _params(status=args.status if args.status != "all" else None, limit=args.limit)
    data = _as_dict(await api.call(args.seller_id, "GET", "/returns", params=params))
    returns: List[Dict[str, Any]] = data.get("returns") or []

    entries = [
        f"**Return Request #{r.get('return_id')}**\n"
        f"   Order: {r.get('order_id')}\n"
        f"   Product: {r.get('product_name')}\n"
        f"   Reason: {r.get('reason')}\n"
        f"   Status: {r.get('status')}\n"
        f"   Date: {_date(r.get('request_date'))}\n"
        f"   Amount: {_money(r.get('refund_amount'))}"
        for r in returns
    ]
    body = "\n\n".join(entries) or "No return requests found"
    return f"**Return Requests** ({len(returns)} {args.status} requests)\n\n{body}"


async def process_return(api: SellerApi, args: ProcessReturnArgs) -> str:
    body = _params(action=args.action, reason=args.reason)
    await api.call(args.seller_id, "POST", f"/returns/{args.return_id}/process", body=body)

    lines = [
        f"**Return Request {'Approved' if args.action == 'approve' else 'Rejected'}!**",
        "",
        f"Return ID: {args.return_id}",
        f"Action: {args.action}",
    ]
    if args.reason:
        lines.append(f"Reason: {args.reason}")
    lines.append(f"Processed: {_now()}")
    return "\n".join(lines)


# ---------------- Analytics ----------------
def _sales(data: Dict[str, Any], args: GetAnalyticsArgs) -> List[str]:
    return [
        "**Sales Analytics**",
        _period(args),
        f"\nTotal Sales: {_money(data.get('total_sales'))}",
        f"Total Orders: {data.get('total_orders')}",
        f"Average Order Value: {_money(data.get('average_order_value'))}",
        f"Units Sold: {data.get('units_sold')}",
    ]


def _orders(data: Dict[str, Any], args: GetAnalyticsArgs) -> List[str]:
    return [
        "**Order Analytics**",
        _period(args),
        f"\nTotal Orders: {data.get('total_orders')}",
        f"Pending: {data.get('pending_orders')}",
        f"Confirmed: {data.get('confirmed_orders')}",
        f"Shipped: {data.get('shipped_orders')}",
        f"Delivered: {data.get('delivered_orders')}",
        f"Cancelled: {data.get('cancelled_orders')}",
        f"Returned: {data.get('returned_orders')}",
    ]


def _revenue(data: Dict[str, Any], args: GetAnalyticsArgs) -> List[str]:
    return [
        "**Revenue Analytics**",
        _period(args),
        f"\nGross Revenue: {_money(data.get('gross_revenue'))}",
        f"Commission: -{_money(data.get('commission'))}",
        f"Shipping: -{_money(data.get('shipping_cost'))}",
        f"Returns/Refunds: -{_money(data.get('refunds'))}",
        f"**Net Revenue: {_money(data.get('net_revenue'))}**",
    ]


def _top_products(data: Dict[str, Any], args: GetAnalyticsArgs) -> List[str]:
    ranked = [
        f"{i}. {p.get('name')} - {p.get('units_sold')} units ({_money(p.get('revenue'))})"
        for i, p in enumerate(data.get("top_products") or [], start=1)
    ]
    return [
        "**Top Products**",
        _period(args),
        "\n   " + ("\n   ".join(ranked) or "No data"),
    ]


def _inventory_health(data: Dict[str, Any], args: GetAnalyticsArgs) -> List[str]:
    return [
        "**Inventory Health**",
        f"\nTotal Products: {data.get('total_products')}",
        f"In Stock: {data.get('in_stock')}",
        f"Low Stock: {data.get('low_stock')} (< 10 units)",
        f"Out of Stock: {data.get('out_of_stock')}",
        f"Average Stock Days: {data.get('avg_stock_days')} days",
    ]


ANALYTICS_RENDERERS = {
    "sales": _sales,
    "orders": _orders,
    "revenue": _revenue,
    "top_products": _top_products,
    "inventory_health": _inventory_health,
}


async def get_analytics(api: SellerApi, args: GetAnalyticsArgs) -> str:
    params = _params(metric=args.metric, from_date=args.from_date, to_date=args.to_date)
    data = _as_dict(await api.call(args.seller_id, "GET", "/analytics", params=params))
    return "\n".join(ANALYTICS_RENDERERS[args.metric](data, args))


HANDLERS: Dict[str, Handler] = {
    "list_products": list_products,
    "get_product": get_product,
    "create_product": create_product,
    "update_product": update_product,
    "update_inventory": update_inventory,
    "list_orders": list_orders,
    "get_order": get_order,
    "update_order_status": update_order_status,
    "get_returns": get_returns,
    "process_return": process_return,
    "get_analytics": get_analytics,
}
