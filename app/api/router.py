from fastapi.routing import APIRouter

from app.api.admin.route import router as admin_router
from app.api.credit_management.route import router as credit_management_router
from app.api.download.route import router as download_router
from app.api.favorite.route import router as favorite_router
from app.api.payment.route import router as payment_router
from app.api.polar.route import router as polar_router
from app.api.preset.route import router as preset_router
from app.api.user.route import router as user_router

api_router = APIRouter()
api_router.include_router(user_router, prefix="/user", tags=["user"])
api_router.include_router(preset_router, prefix="/preset", tags=["preset"])
api_router.include_router(download_router, prefix="/download", tags=["download"])
api_router.include_router(favorite_router, prefix="/favorite", tags=["favorite"])
api_router.include_router(payment_router, prefix="/payment", tags=["payment"])
api_router.include_router(polar_router, prefix="/polar", tags=["polar"])
api_router.include_router(
    credit_management_router, prefix="/credit-management", tags=["credit-management"]
)
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])
