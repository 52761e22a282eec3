from unittest.mock import Mock

import pytest

from product_configurator.platforms.catalog_client import CatalogClient


@pytest.fixture
def image_files(tmp_path):
    """Six small local image files (one more than the per-set limit)"""
    paths = []
    for i in range(6):
        p = tmp_path / f"img{i}.jpg"
        p.write_bytes(b"\xff\xd8\xff" + bytes([i]))
        paths.append(p)
    return paths


@pytest.fixture
def client():
    """Collaborator double with the CatalogClient interface"""
    mock = Mock(spec=CatalogClient)
    mock.upload_images.side_effect = lambda files: [f"https://cdn/{f.name}" for f in files]
    mock.create_product.side_effect = lambda payload: {"_id": "new-id", **payload}
    mock.update_product.side_effect = lambda product_id, payload: {"_id": product_id, **payload}
    return mock
