from fastapi import APIRouter

from internal.controllers.api import third_party

router = APIRouter(prefix="/v1")

routers = [
    third_party.router,
]

for r in routers:
    router.include_router(router=r)
