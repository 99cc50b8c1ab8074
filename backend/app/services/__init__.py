# backend/app/services/__init__.py
from .ingestion_service import IngestionService
