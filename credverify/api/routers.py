# Central API router include file
from fastapi import APIRouter

# Import domain routers
from credverify.verification.router import router as verification_router
from credverify.verification.review_queue.router import router as review_queue_router

# Create main API router
api_router = APIRouter()

# Include domain routers with prefixes
api_router.include_router(verification_router)
api_router.include_router(review_queue_router)
