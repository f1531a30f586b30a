# File: apied_piper/api/routes_home.py

import time

from fastapi import APIRouter, Request, status

from apied_piper.api.responses import send_response

router = APIRouter()


@router.get("/", summary="Service banner")
def home(request: Request):
    uptime = time.time() - request.app.state.started_at
    return send_response(
        status.HTTP_200_OK,
        "APIed Piper API is running",
        {"uptime": round(uptime, 3)},
    )
