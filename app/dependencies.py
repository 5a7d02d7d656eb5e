# app/dependencies.py
from fastapi import Depends

from app.core.payment_gateway import PaymentGateway, get_payment_gateway
from app.repositories.cart_repo import CartRepository
from app.repositories.coupon_repo import CouponRepository
from app.repositories.delivery_repo import DeliveryMethodRepository
from app.repositories.notification_repo import NotificationRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.services.cart_service import CartService
from app.services.coupon_service import CouponService
from app.services.delivery_service import DeliveryMethodService
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.payment_service import PaymentService

# Repositories are stateless; one instance each is shared by all requests.
cart_repo = CartRepository()
product_repo = ProductRepository()
order_repo = OrderRepository()
delivery_repo = DeliveryMethodRepository()
coupon_repo = CouponRepository()
notification_repo = NotificationRepository()

coupon_service = CouponService(coupon_repo)
notification_service = NotificationService(notification_repo)
delivery_service = DeliveryMethodService(delivery_repo)
cart_service = CartService(cart_repo, product_repo, delivery_repo, coupon_service)


def build_payment_service(gateway: PaymentGateway) -> PaymentService:
    return PaymentService(
        cart_repo, product_repo, delivery_repo, order_repo, coupon_service, gateway
    )


def build_order_service(gateway: PaymentGateway) -> OrderService:
    return OrderService(
        order_repo,
        cart_repo,
        product_repo,
        delivery_repo,
        coupon_service,
        build_payment_service(gateway),
        gateway,
    )


def get_delivery_service() -> DeliveryMethodService:
    return delivery_service


def get_cart_service() -> CartService:
    return cart_service


def get_payment_service(
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentService:
    return build_payment_service(gateway)


def get_order_service(
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> OrderService:
    return build_order_service(gateway)
