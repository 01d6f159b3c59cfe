# storefront/models/__init__.py
from storefront.models.user_models import User, UserActivity
from storefront.models.product_models import Product
from storefront.models.order_models import Order, OrderItem, OrderStatus, Counter
from storefront.models.promo_code_models import PromoCode
