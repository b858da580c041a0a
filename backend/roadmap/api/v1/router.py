from fastapi import APIRouter

from roadmap.api.v1 import dependencies, milestones, products

api_router = APIRouter()
api_router.include_router(products.router)
api_router.include_router(milestones.router)
api_router.include_router(dependencies.router)
