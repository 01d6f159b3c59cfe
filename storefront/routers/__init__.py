from fastapi import APIRouter
from .auth_router import router as auth_router
from .users_router import router as users_router
from .products_router import router as products_router
from .orders_router import router as orders_router
from .promo_codes_router import router as promo_codes_router

router = APIRouter()

router.include_router(auth_router)
router.include_router(users_router)
router.include_router(products_router)
router.include_router(orders_router)
router.include_router(promo_codes_router)
