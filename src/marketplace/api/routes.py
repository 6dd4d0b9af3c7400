"""FastAPI routes for the Marketplace — products, cart, orders and deliveries."""

import json
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from marketplace.api.auth import Actor, current_actor
from marketplace.api.schemas import (
    AcceptDeliveryRequest,
    AddToCartRequest,
    CancelOrderRequest,
    CartResponse,
    ChangePriceRequest,
    CheckoutRequest,
    CompleteDeliveryRequest,
    DelivererHistoryResponse,
    DeliveryIdResponse,
    DeliveryListResponse,
    DeliveryResponse,
    ListProductRequest,
    OrderIdResponse,
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
    ProductIdResponse,
    ProductResponse,
    RecordPaymentRequest,
    ReportDeliveryFailureRequest,
    SetAvailabilityRequest,
    StatusResponse,
    TransactionHistoryResponse,
    UpdateCartItemRequest,
    UpdateDeliveryStatusRequest,
    UpdateOrderStatusRequest,
)
from marketplace.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartItem, get_cart
from marketplace.catalogue.ledger import get_product
from marketplace.catalogue.listing import ChangeProductPrice, ListProduct, SetProductAvailability
from marketplace.delivery.assignment import AcceptDelivery
from marketplace.delivery.progress import CompleteDelivery, ReportDeliveryFailure, UpdateDeliveryStatus
from marketplace.delivery.queries import deliverer_history, deliveries_for, get_delivery
from marketplace.exceptions import AuthorizationError
from marketplace.order import queries as order_queries
from marketplace.order.cancellation import CancelOrder
from marketplace.order.creation import Checkout, PlaceOrder
from marketplace.order.order import Order
from marketplace.order.payment import RecordPayment
from marketplace.order.status import UpdateOrderStatus
from marketplace.roles import Role, require_role


def _address_json(address) -> str | None:
    return json.dumps(address.model_dump()) if address else None


def _order_list(page: dict) -> OrderListResponse:
    return OrderListResponse(
        orders=[OrderResponse.from_order(o) for o in page["items"]],
        total=page["total"],
        page=page["page"],
        pages=page["pages"],
    )


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def list_product(body: ListProductRequest, actor: Actor = Depends(current_actor)) -> ProductIdResponse:
    require_role(actor.role, Role.PRODUCER)
    command = ListProduct(
        producer_id=actor.user_id,
        name=body.name,
        description=body.description,
        price=body.price,
        stock=body.stock,
        unit=body.unit,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.get("/{product_id}", response_model=ProductResponse)
async def get_product_details(product_id: str) -> ProductResponse:
    return ProductResponse.from_product(get_product(product_id))


def _assert_owns_product(product_id: str, actor: Actor) -> None:
    require_role(actor.role, Role.PRODUCER, Role.ADMIN)
    if actor.role == Role.PRODUCER.value and str(get_product(product_id).producer_id) != actor.user_id:
        raise AuthorizationError({"product": ["Only the producer of this product can change it"]})


@product_router.put("/{product_id}/price", response_model=StatusResponse)
async def change_price(
    product_id: str, body: ChangePriceRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _assert_owns_product(product_id, actor)
    current_domain.process(ChangeProductPrice(product_id=product_id, price=body.price), asynchronous=False)
    return StatusResponse()


@product_router.put("/{product_id}/availability", response_model=StatusResponse)
async def set_availability(
    product_id: str, body: SetAvailabilityRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _assert_owns_product(product_id, actor)
    current_domain.process(
        SetProductAvailability(product_id=product_id, is_available=body.is_available),
        asynchronous=False,
    )
    return StatusResponse()


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


def _consumer(actor: Actor = Depends(current_actor)) -> Actor:
    require_role(actor.role, Role.CONSUMER)
    return actor


@cart_router.get("", response_model=CartResponse)
async def view_cart(actor: Actor = Depends(_consumer)) -> CartResponse:
    return CartResponse.from_cart(get_cart(actor.user_id))


@cart_router.post("/items", response_model=CartResponse)
async def add_cart_item(body: AddToCartRequest, actor: Actor = Depends(_consumer)) -> CartResponse:
    command = AddToCart(
        consumer_id=actor.user_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return CartResponse.from_cart(get_cart(actor.user_id))


@cart_router.put("/items/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: str, body: UpdateCartItemRequest, actor: Actor = Depends(_consumer)
) -> CartResponse:
    command = UpdateCartItem(
        consumer_id=actor.user_id,
        product_id=product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return CartResponse.from_cart(get_cart(actor.user_id))


@cart_router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(product_id: str, actor: Actor = Depends(_consumer)) -> CartResponse:
    current_domain.process(
        RemoveFromCart(consumer_id=actor.user_id, product_id=product_id),
        asynchronous=False,
    )
    return CartResponse.from_cart(get_cart(actor.user_id))


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(actor: Actor = Depends(_consumer)) -> CartResponse:
    current_domain.process(ClearCart(consumer_id=actor.user_id), asynchronous=False)
    return CartResponse.from_cart(get_cart(actor.user_id))


@cart_router.post("/checkout", status_code=201, response_model=OrderIdResponse)
async def checkout(body: CheckoutRequest, actor: Actor = Depends(_consumer)) -> OrderIdResponse:
    command = Checkout(
        consumer_id=actor.user_id,
        payment_method=body.payment_method,
        delivery_method=body.delivery_method,
        delivery_address=_address_json(body.delivery_address),
        notes=body.notes,
    )
    order_id = current_domain.process(command, asynchronous=False)
    order = current_domain.repository_for(Order).get(order_id)
    return OrderIdResponse(order_id=order_id, order_number=order.order_number)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest, actor: Actor = Depends(_consumer)) -> OrderIdResponse:
    command = PlaceOrder(
        consumer_id=actor.user_id,
        items=json.dumps([line.model_dump() for line in body.items]),
        payment_method=body.payment_method,
        delivery_method=body.delivery_method,
        delivery_address=_address_json(body.delivery_address),
        notes=body.notes,
    )
    order_id = current_domain.process(command, asynchronous=False)
    order = current_domain.repository_for(Order).get(order_id)
    return OrderIdResponse(order_id=order_id, order_number=order.order_number)


@order_router.get("/mine", response_model=OrderListResponse)
async def my_orders(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(_consumer),
) -> OrderListResponse:
    return _order_list(order_queries.orders_for_consumer(actor.user_id, status, page, limit))


@order_router.get("/producer", response_model=OrderListResponse)
async def producer_orders(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(current_actor),
) -> OrderListResponse:
    require_role(actor.role, Role.PRODUCER)
    return _order_list(order_queries.orders_for_producer(actor.user_id, status, page, limit))


@order_router.get("/deliverer", response_model=OrderListResponse)
async def deliverer_orders(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(current_actor),
) -> OrderListResponse:
    require_role(actor.role, Role.DELIVERER)
    return _order_list(order_queries.orders_for_deliverer(actor.user_id, status, page, limit))


@order_router.get("/transactions", response_model=TransactionHistoryResponse)
async def transactions(
    status: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(current_actor),
) -> TransactionHistoryResponse:
    result = order_queries.transaction_history(
        actor.user_id,
        actor.role,
        status=status,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return TransactionHistoryResponse(
        orders=[OrderResponse.from_order(o) for o in result["items"]],
        total=result["total"],
        page=result["page"],
        pages=result["pages"],
        stats=result["stats"],
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, actor: Actor = Depends(current_actor)) -> OrderResponse:
    return OrderResponse.from_order(order_queries.get_order(order_id, actor.user_id, actor.role))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, actor: Actor = Depends(current_actor)
) -> OrderResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        actor_id=actor.user_id,
        actor_role=actor.role,
        status=body.status,
        note=body.note,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(current_domain.repository_for(Order).get(order_id))


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str, body: CancelOrderRequest | None = None, actor: Actor = Depends(_consumer)
) -> OrderResponse:
    command = CancelOrder(
        order_id=order_id,
        consumer_id=actor.user_id,
        reason=body.reason if body else None,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(current_domain.repository_for(Order).get(order_id))


@order_router.put("/{order_id}/payment", response_model=OrderResponse)
async def record_payment(
    order_id: str, body: RecordPaymentRequest, actor: Actor = Depends(current_actor)
) -> OrderResponse:
    command = RecordPayment(
        order_id=order_id,
        actor_id=actor.user_id,
        actor_role=actor.role,
        payment_status=body.payment_status,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(current_domain.repository_for(Order).get(order_id))


# ---------------------------------------------------------------------------
# Delivery Router
# ---------------------------------------------------------------------------
delivery_router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@delivery_router.get("/available", response_model=OrderListResponse)
async def available_deliveries(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(current_actor),
) -> OrderListResponse:
    return _order_list(order_queries.available_for_delivery(actor.role, page, limit))


@delivery_router.get("/mine", response_model=DelivererHistoryResponse)
async def my_deliveries(actor: Actor = Depends(current_actor)) -> DelivererHistoryResponse:
    require_role(actor.role, Role.DELIVERER)
    result = deliverer_history(actor.user_id)
    return DelivererHistoryResponse(
        deliveries=[DeliveryResponse.from_delivery(d) for d in result["deliveries"]],
        stats=result["stats"],
    )


@delivery_router.get("", response_model=DeliveryListResponse)
async def list_deliveries(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(current_actor),
) -> DeliveryListResponse:
    result = deliveries_for(actor.user_id, actor.role, status, page, limit)
    return DeliveryListResponse(
        deliveries=[DeliveryResponse.from_delivery(d) for d in result["items"]],
        total=result["total"],
        page=result["page"],
        pages=result["pages"],
    )


@delivery_router.post("/accept/{order_id}", status_code=201, response_model=DeliveryIdResponse)
async def accept_delivery(
    order_id: str, body: AcceptDeliveryRequest | None = None, actor: Actor = Depends(current_actor)
) -> DeliveryIdResponse:
    body = body or AcceptDeliveryRequest()
    command = AcceptDelivery(
        order_id=order_id,
        deliverer_id=actor.user_id,
        actor_role=actor.role,
        pickup_address=body.pickup_address,
        distance_km=body.distance_km,
        delivery_fee=body.delivery_fee,
        notes=body.notes,
    )
    delivery_id = current_domain.process(command, asynchronous=False)
    return DeliveryIdResponse(delivery_id=delivery_id)


@delivery_router.get("/{delivery_id}", response_model=DeliveryResponse)
async def get_delivery_details(delivery_id: str, actor: Actor = Depends(current_actor)) -> DeliveryResponse:
    return DeliveryResponse.from_delivery(get_delivery(delivery_id, actor.user_id, actor.role))


@delivery_router.put("/{delivery_id}/status", response_model=DeliveryResponse)
async def update_delivery_status(
    delivery_id: str, body: UpdateDeliveryStatusRequest, actor: Actor = Depends(current_actor)
) -> DeliveryResponse:
    command = UpdateDeliveryStatus(
        delivery_id=delivery_id,
        deliverer_id=actor.user_id,
        status=body.status,
        notes=body.notes,
    )
    current_domain.process(command, asynchronous=False)
    return DeliveryResponse.from_delivery(get_delivery(delivery_id, actor.user_id, actor.role))


@delivery_router.put("/{delivery_id}/complete", response_model=DeliveryResponse)
async def complete_delivery(
    delivery_id: str, body: CompleteDeliveryRequest | None = None, actor: Actor = Depends(current_actor)
) -> DeliveryResponse:
    body = body or CompleteDeliveryRequest()
    command = CompleteDelivery(
        delivery_id=delivery_id,
        deliverer_id=actor.user_id,
        notes=body.notes,
        photo=body.photo,
        signature=body.signature,
    )
    current_domain.process(command, asynchronous=False)
    return DeliveryResponse.from_delivery(get_delivery(delivery_id, actor.user_id, actor.role))


@delivery_router.put("/{delivery_id}/fail", response_model=DeliveryResponse)
async def report_delivery_failure(
    delivery_id: str, body: ReportDeliveryFailureRequest, actor: Actor = Depends(current_actor)
) -> DeliveryResponse:
    command = ReportDeliveryFailure(
        delivery_id=delivery_id,
        deliverer_id=actor.user_id,
        reason=body.reason,
    )
    current_domain.process(command, asynchronous=False)
    return DeliveryResponse.from_delivery(get_delivery(delivery_id, actor.user_id, actor.role))
