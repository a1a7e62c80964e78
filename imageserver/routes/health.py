"""
Liveness route for the S3 Image Server.
"""

from fastapi import APIRouter

from ..config import LIVENESS_MESSAGE

router = APIRouter()


@router.get("/")
async def root():
    return {"message": LIVENESS_MESSAGE}
