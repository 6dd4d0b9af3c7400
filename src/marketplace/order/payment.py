"""Order payment recording — command and handler.

Settlement itself happens outside the marketplace. Admins record the
outcome, and consumers may record the result of a card or mobile-money
payment they just made.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import AuthorizationError
from marketplace.order.order import Order, PaymentMethod
from marketplace.roles import Role, require_role

_SELF_SETTLED_METHODS = {PaymentMethod.CARD.value, PaymentMethod.MOBILE_MONEY.value}


@marketplace.command(part_of="Order")
class RecordPayment:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    payment_status = String(required=True, max_length=20)


@marketplace.command_handler(part_of=Order)
class RecordPaymentHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        require_role(command.actor_role, Role.CONSUMER, Role.ADMIN)

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if command.actor_role == Role.CONSUMER.value:
            if str(order.consumer_id) != str(command.actor_id):
                raise AuthorizationError({"order": ["Only the consumer who placed the order can pay for it"]})
            if order.payment_method not in _SELF_SETTLED_METHODS:
                raise AuthorizationError({"payment_method": ["Cash on delivery is settled by an admin"]})

        order.record_payment(command.payment_status)
        repo.add(order)
        return order.payment_status
