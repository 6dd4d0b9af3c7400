"""Pydantic request/response schemas for the Marketplace API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from pydantic import BaseModel, Field


def _iso(value) -> str | None:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str
    city: str
    region: str | None = None
    postal_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class OrderLineSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)


class PageMeta(BaseModel):
    total: int
    page: int
    pages: int


# ---------------------------------------------------------------------------
# Product schemas
# ---------------------------------------------------------------------------
class ListProductRequest(BaseModel):
    name: str
    description: str | None = None
    price: float = Field(ge=0)
    stock: int = Field(ge=0, default=0)
    unit: str = "kg"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Organic tomatoes",
                    "price": 2.5,
                    "stock": 120,
                    "unit": "kg",
                }
            ]
        }
    }


class ChangePriceRequest(BaseModel):
    price: float = Field(ge=0)


class SetAvailabilityRequest(BaseModel):
    is_available: bool


class ProductIdResponse(BaseModel):
    product_id: str


class ProductResponse(BaseModel):
    product_id: str
    name: str
    description: str | None = None
    producer_id: str
    price: float
    stock: int
    unit: str | None = None
    is_available: bool

    @classmethod
    def from_product(cls, product) -> "ProductResponse":
        return cls(
            product_id=str(product.id),
            name=product.name,
            description=product.description,
            producer_id=str(product.producer_id),
            price=product.price,
            stock=product.stock,
            unit=product.unit,
            is_available=bool(product.is_available),
        )


# ---------------------------------------------------------------------------
# Cart schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartItemRequest(BaseModel):
    quantity: int


class CartItemResponse(BaseModel):
    product_id: str
    quantity: int
    added_at: str | None = None


class CartResponse(BaseModel):
    consumer_id: str
    items: list[CartItemResponse]
    total_amount: float

    @classmethod
    def from_cart(cls, cart) -> "CartResponse":
        return cls(
            consumer_id=str(cart.consumer_id),
            items=[
                CartItemResponse(
                    product_id=str(i.product_id),
                    quantity=i.quantity,
                    added_at=_iso(i.added_at),
                )
                for i in cart.items
            ],
            total_amount=cart.total_amount or 0.0,
        )


class CheckoutRequest(BaseModel):
    payment_method: str
    delivery_method: str
    delivery_address: AddressSchema | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Order schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    items: list[OrderLineSchema]
    payment_method: str
    delivery_method: str
    delivery_address: AddressSchema | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 3}],
                    "payment_method": "mobile-money",
                    "delivery_method": "home-delivery",
                    "delivery_address": {
                        "street": "12 Rue des Palmiers",
                        "city": "Dakar",
                        "region": "Dakar",
                        "latitude": 14.69,
                        "longitude": -17.44,
                    },
                }
            ]
        }
    }


class UpdateOrderStatusRequest(BaseModel):
    status: str
    note: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class RecordPaymentRequest(BaseModel):
    payment_status: str


class OrderIdResponse(BaseModel):
    order_id: str
    order_number: str | None = None


class OrderItemResponse(BaseModel):
    product_id: str
    producer_id: str
    product_name: str | None = None
    quantity: int
    unit_price: float
    subtotal: float


class StatusChangeResponse(BaseModel):
    status: str
    changed_by: str | None = None
    changed_at: str | None = None
    note: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    consumer_id: str
    status: str
    payment_method: str
    payment_status: str
    delivery_method: str
    delivery_address: AddressSchema | None = None
    deliverer_id: str | None = None
    estimated_delivery_date: str | None = None
    actual_delivery_date: str | None = None
    total_amount: float
    notes: str | None = None
    items: list[OrderItemResponse]
    status_history: list[StatusChangeResponse]
    created_at: str | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        address = order.delivery_address
        return cls(
            order_id=str(order.id),
            order_number=order.order_number,
            consumer_id=str(order.consumer_id),
            status=order.status,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            delivery_method=order.delivery_method,
            delivery_address=(
                AddressSchema(
                    street=address.street,
                    city=address.city,
                    region=address.region,
                    postal_code=address.postal_code,
                    latitude=address.latitude,
                    longitude=address.longitude,
                )
                if address
                else None
            ),
            deliverer_id=str(order.deliverer_id) if order.deliverer_id else None,
            estimated_delivery_date=_iso(order.estimated_delivery_date),
            actual_delivery_date=_iso(order.actual_delivery_date),
            total_amount=order.total_amount,
            notes=order.notes,
            items=[
                OrderItemResponse(
                    product_id=str(i.product_id),
                    producer_id=str(i.producer_id),
                    product_name=i.product_name,
                    quantity=i.quantity,
                    unit_price=i.unit_price,
                    subtotal=i.subtotal,
                )
                for i in order.items
            ],
            status_history=[
                StatusChangeResponse(
                    status=h.status,
                    changed_by=str(h.changed_by) if h.changed_by else None,
                    changed_at=_iso(h.changed_at),
                    note=h.note,
                )
                for h in order.history()
            ],
            created_at=_iso(order.created_at),
        )


class OrderListResponse(PageMeta):
    orders: list[OrderResponse]


class TransactionStats(BaseModel):
    total_transactions: int
    total_amount: float
    by_status: dict[str, int]


class TransactionHistoryResponse(OrderListResponse):
    stats: TransactionStats


# ---------------------------------------------------------------------------
# Delivery schemas
# ---------------------------------------------------------------------------
class AcceptDeliveryRequest(BaseModel):
    pickup_address: str | None = None
    distance_km: float | None = Field(default=None, ge=0)
    delivery_fee: float | None = Field(default=None, ge=0)
    notes: str | None = None


class UpdateDeliveryStatusRequest(BaseModel):
    status: str
    notes: str | None = None


class CompleteDeliveryRequest(BaseModel):
    notes: str | None = None
    photo: str | None = None
    signature: str | None = None


class ReportDeliveryFailureRequest(BaseModel):
    reason: str


class DeliveryIdResponse(BaseModel):
    delivery_id: str


class LocationSchema(BaseModel):
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class DeliveryResponse(BaseModel):
    delivery_id: str
    order_id: str
    deliverer_id: str
    status: str
    pickup_location: LocationSchema | None = None
    delivery_location: LocationSchema | None = None
    estimated_time: str | None = None
    actual_delivery_time: str | None = None
    distance_km: float | None = None
    delivery_fee: float
    notes: str | None = None
    proof_photo: str | None = None
    proof_signature: str | None = None

    @classmethod
    def from_delivery(cls, delivery) -> "DeliveryResponse":
        def location(loc):
            return LocationSchema(address=loc.address, latitude=loc.latitude, longitude=loc.longitude) if loc else None

        proof = delivery.proof_of_delivery
        return cls(
            delivery_id=str(delivery.id),
            order_id=str(delivery.order_id),
            deliverer_id=str(delivery.deliverer_id),
            status=delivery.status,
            pickup_location=location(delivery.pickup_location),
            delivery_location=location(delivery.delivery_location),
            estimated_time=_iso(delivery.estimated_time),
            actual_delivery_time=_iso(delivery.actual_delivery_time),
            distance_km=delivery.distance_km,
            delivery_fee=delivery.delivery_fee or 0.0,
            notes=delivery.notes,
            proof_photo=proof.photo if proof else None,
            proof_signature=proof.signature if proof else None,
        )


class DeliveryListResponse(PageMeta):
    deliveries: list[DeliveryResponse]


class DelivererStats(BaseModel):
    total: int
    completed: int
    in_progress: int
    failed: int


class DelivererHistoryResponse(BaseModel):
    deliveries: list[DeliveryResponse]
    stats: DelivererStats


class StatusResponse(BaseModel):
    status: str = "ok"
