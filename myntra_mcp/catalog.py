"""
The fixed catalog of Myntra seller tools.

Each entry pairs a tool name and description with a pydantic model describing
its arguments. The model is both the validator applied at dispatch time and the
source of the JSON schema advertised to MCP clients.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

AUTHENTICATE = "authenticate"
STATUS = "status"


def _product_id() -> Any:
    return Field(description="Product SKU or ID")


def _from_date() -> Any:
    return Field(default=None, description="Start date (YYYY-MM-DD)")


def _to_date() -> Any:
    return Field(default=None, description="End date (YYYY-MM-DD)")


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    seller_id: str = Field(description="Myntra Seller ID")


class AuthenticateArgs(ToolArgs):
    api_key: str = Field(description="API Key from Myntra Seller Dashboard")
    api_secret: str = Field(description="API Secret from Myntra Seller Dashboard")


class StatusArgs(ToolArgs):
    pass


class ListProductsArgs(ToolArgs):
    status: Literal["active", "inactive", "pending", "rejected", "all"] = Field(
        default="all", description="Filter by product status"
    )
    category: Optional[str] = Field(default=None, description="Filter by category")
    limit: int = Field(default=50, ge=1, description="Maximum products to return")
    offset: int = Field(default=0, ge=0, description="Offset for pagination")


class GetProductArgs(ToolArgs):
    product_id: str = _product_id()


class CreateProductArgs(ToolArgs):
    sku: str = Field(description="Product SKU")
    name: str = Field(description="Product name")
    brand: str = Field(description="Brand name")
    category: str = Field(description="Product category")
    mrp: float = Field(ge=0, description="Maximum Retail Price")
    selling_price: float = Field(ge=0, description="Selling price")
    inventory: int = Field(ge=0, description="Available inventory")
    description: Optional[str] = Field(default=None, description="Product description")
    images: List[str] = Field(default_factory=list, description="Product image URLs")


class UpdateProductArgs(ToolArgs):
    product_id: str = _product_id()
    updates: Dict[str, Any] = Field(
        description="Fields to update (e.g., {selling_price: 999, inventory: 50})"
    )


class UpdateInventoryArgs(ToolArgs):
    product_id: str = _product_id()
    quantity: int = Field(ge=0, description="New inventory quantity")


class ListOrdersArgs(ToolArgs):
    status: Literal["pending", "confirmed", "shipped", "delivered", "cancelled", "returned", "all"] = Field(
        default="all", description="Filter by order status"
    )
    from_date: Optional[str] = _from_date()
    to_date: Optional[str] = _to_date()
    limit: int = Field(default=50, ge=1, description="Maximum orders to return")


class GetOrderArgs(ToolArgs):
    order_id: str = Field(description="Order ID")


class UpdateOrderStatusArgs(ToolArgs):
    order_id: str = Field(description="Order ID")
    status: Literal["ready_to_ship", "shipped", "cancelled"] = Field(description="New order status")
    tracking_id: Optional[str] = Field(default=None, description="Tracking ID (required for shipped status)")
    courier_partner: Optional[str] = Field(default=None, description="Courier partner name")


class GetReturnsArgs(ToolArgs):
    status: Literal["pending", "approved", "rejected", "completed", "all"] = Field(
        default="pending", description="Filter by return status"
    )
    limit: int = Field(default=25, ge=1, description="Maximum returns to return")


class ProcessReturnArgs(ToolArgs):
    return_id: str = Field(description="Return request ID")
    action: Literal["approve", "reject"] = Field(description="Action to take")
    reason: Optional[str] = Field(default=None, description="Reason for rejection (if applicable)")


class GetAnalyticsArgs(ToolArgs):
    metric: Literal["sales", "orders", "revenue", "top_products", "inventory_health"] = Field(
        description="Metric to retrieve"
    )
    from_date: Optional[str] = _from_date()
    to_date: Optional[str] = _to_date()


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: Type[ToolArgs]

    def input_schema(self) -> Dict[str, Any]:
        """JSON schema advertised in tools/list."""
        return self.args_model.model_json_schema()


CATALOG = (
    ToolSpec(AUTHENTICATE, "Authenticate with Myntra Seller API", AuthenticateArgs),
    ToolSpec(STATUS, "Check Myntra seller account status", StatusArgs),
    ToolSpec("list_products", "List all products in your catalog", ListProductsArgs),
    ToolSpec("get_product", "Get detailed information about a specific product", GetProductArgs),
    ToolSpec("create_product", "Create a new product listing", CreateProductArgs),
    ToolSpec("update_product", "Update an existing product", UpdateProductArgs),
    ToolSpec("update_inventory", "Update product inventory", UpdateInventoryArgs),
    ToolSpec("list_orders", "List orders with optional filtering", ListOrdersArgs),
    ToolSpec("get_order", "Get detailed information about a specific order", GetOrderArgs),
    ToolSpec("update_order_status", "Update order status (ready to ship, shipped, etc.)", UpdateOrderStatusArgs),
    ToolSpec("get_returns", "List return requests", GetReturnsArgs),
    ToolSpec("process_return", "Approve or reject a return request", ProcessReturnArgs),
    ToolSpec("get_analytics", "Get sales and performance analytics", GetAnalyticsArgs),
)

TOOLS_BY_NAME: Dict[str, ToolSpec] = {spec.name: spec for spec in CATALOG}
