from fastapi import APIRouter

from apied_piper.api.routes_home import router as home_router
from apied_piper.api.routes_tasks import router as tasks_router
from apied_piper.api.routes_users import router as users_router


api_router = APIRouter()

api_router.include_router(home_router, tags=["home"])
api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
