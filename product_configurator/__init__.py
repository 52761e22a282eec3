# product_configurator/__init__.py

from product_configurator.pipeline.editor import ProductEditor
from product_configurator.pipeline.submission import EditorMode, SubmissionResult
from product_configurator.platforms.catalog_client import CatalogApiError, CatalogClient

__version__ = "0.1.0"

__all__ = [
    "CatalogApiError",
    "CatalogClient",
    "EditorMode",
    "ProductEditor",
    "SubmissionResult",
]
