# Fichier: vocab_srs/api/v2/api.py
from fastapi import APIRouter
from .endpoints import vocab_router

api_router = APIRouter()

api_router.include_router(vocab_router.router, prefix="/vocab", tags=["Vocabulary SRS"])
