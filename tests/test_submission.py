import pytest

from product_configurator.core.notices import NoticeBoard
from product_configurator.core.product_schema import ProductDraft
from product_configurator.core.specs import SpecEntry, SpecList
from product_configurator.core.variants import VariantCollection
from product_configurator.pipeline.editor import ProductEditor
from product_configurator.pipeline.submission import (
    CREATE_PRICE_POLICY,
    EDIT_PRICE_POLICY,
    EditorMode,
    SubmissionAssembler,
    SubmissionState,
    build_payload,
    validate_draft,
)
from product_configurator.platforms.catalog_client import CatalogApiError


def _no_network(client):
    assert client.upload_images.call_count == 0
    assert client.create_product.call_count == 0
    assert client.update_product.call_count == 0


def _create_editor(client, **variant):
    editor = ProductEditor.for_create(client=client)
    editor.set_name("Test Pad")
    editor.set_description("Une manette")
    for field_name, value in variant.items():
        editor.update_variant(0, field_name, value)
    return editor


def _simple_draft(stock=4, urls=("https://cdn/g.jpg",)):
    draft = ProductDraft(name="Legacy", slug="legacy", description="Old product", product_id="p9",
                         variants=VariantCollection(), global_stock=stock)
    draft.global_images.add_urls(list(urls))
    return draft


# --- price policies ---

def test_create_policy_requires_positive_prices():
    assert not CREATE_PRICE_POLICY.variant_price_ok(0)
    assert CREATE_PRICE_POLICY.variant_price_ok(0.5)
    assert not CREATE_PRICE_POLICY.base_price_ok(0)


def test_edit_policy_accepts_zero_variant_price_but_not_zero_base():
    assert EDIT_PRICE_POLICY.variant_price_ok(0)
    assert not EDIT_PRICE_POLICY.variant_price_ok(-1)
    assert not EDIT_PRICE_POLICY.base_price_ok(0)
    assert EDIT_PRICE_POLICY.base_price_ok(10)


@pytest.mark.parametrize("value", [None, "100", True, float("nan")])
def test_non_numeric_prices_are_rejected(value):
    assert not CREATE_PRICE_POLICY.variant_price_ok(value)
    assert not EDIT_PRICE_POLICY.variant_price_ok(value)


# --- validation ---

def test_zero_price_variant_fails_create_validation_without_network(client):
    editor = _create_editor(client, name="A", sku="A1", price=0, stock=1)

    result = editor.submit()

    assert not result.ok
    assert result.error == "validation_error"
    assert "variants[0].price" in [i.field for i in result.issues]
    assert editor.assembler.state is SubmissionState.EDITING
    _no_network(client)


def test_blank_name_and_description_are_field_errors(client):
    editor = ProductEditor.for_create(client=client)
    editor.update_variant(0, "name", "A")
    editor.update_variant(0, "sku", "A1")
    editor.update_variant(0, "price", 10)

    result = editor.submit()

    assert [i.field for i in result.issues] == ["name", "description"]
    _no_network(client)


def test_variant_requires_name_sku_and_valid_stock():
    draft = ProductDraft(name="x", description="y")
    draft.variants.add()
    draft.variants.update(0, "price", 10)
    draft.variants.update(0, "stock", -2)

    fields = [i.field for i in validate_draft(draft, CREATE_PRICE_POLICY)]
    assert fields == ["variants[0].name", "variants[0].sku", "variants[0].stock"]


def test_missing_default_is_repaired_before_validation(client):
    editor = _create_editor(client, name="Std", sku="STD1", price=100, stock=1)
    editor.add_variant()
    editor.update_variant(1, "name", "Pro")
    editor.update_variant(1, "sku", "PRO1")
    editor.update_variant(1, "price", 200)
    editor.update_variant(0, "is_default", False)

    result = editor.submit()

    assert result.ok
    assert [v["isDefault"] for v in result.payload["variants"]] == [True, False]
    assert result.payload["basePrice"] == 100


def test_simple_priced_negative_stock_fails_without_network(client):
    assembler = SubmissionAssembler(client, EditorMode.EDIT)

    result = assembler.submit(_simple_draft(stock=-1))

    assert not result.ok
    assert [i.field for i in result.issues] == ["stock"]
    _no_network(client)


def test_simple_priced_requires_stock_and_global_image(client):
    assembler = SubmissionAssembler(client, EditorMode.EDIT)

    result = assembler.submit(_simple_draft(stock=None, urls=()))

    assert [i.field for i in result.issues] == ["stock", "images"]
    _no_network(client)


def test_edit_mode_allows_zero_price_on_non_default_variant(client):
    record = {
        "_id": "p1", "name": "Pad", "slug": "pad", "description": "d",
        "variants": [
            {"_id": "v1", "name": "Std", "sku": "S", "price": 100, "stock": 1, "isDefault": True},
            {"_id": "v2", "name": "Gift", "sku": "G", "price": 0, "stock": 1},
        ],
    }
    editor = ProductEditor.for_edit(record, client=client)

    assert editor.submit().ok


# --- end to end ---

def test_create_end_to_end_payload(client, image_files):
    client.upload_images.side_effect = None
    client.upload_images.return_value = ["https://cdn/x.jpg"]
    editor = _create_editor(client, name="Std", sku="STD1", price=5000, stock=10, is_default=True)
    assert editor.add_variant_images(0, [image_files[0]])
    editor.add_spec()
    editor.update_spec(0, "key", "Couleur")
    editor.update_spec(0, "value", "Noir")

    result = editor.submit()

    assert result.ok
    assert result.value["_id"] == "new-id"
    payload = result.payload
    assert payload["variants"][0]["images"] == ["https://cdn/x.jpg"]
    assert payload["basePrice"] == 5000
    assert payload == {
        "name": "Test Pad",
        "slug": "test-pad",
        "description": "Une manette",
        "isFeatured": False,
        "specs": {"Couleur": "Noir"},
        "images": [],
        "variants": [
            {"name": "Std", "sku": "STD1", "price": 5000, "stock": 10,
             "images": ["https://cdn/x.jpg"], "isDefault": True},
        ],
        "basePrice": 5000,
    }
    client.upload_images.assert_called_once_with([image_files[0]])
    client.create_product.assert_called_once_with(payload)
    assert editor.assembler.history == [
        SubmissionState.EDITING,
        SubmissionState.VALIDATING,
        SubmissionState.UPLOADING,
        SubmissionState.ASSEMBLING,
        SubmissionState.SUBMITTING,
        SubmissionState.SUCCESS,
    ]


def test_variant_uploads_are_sequential_and_isolated(client, image_files):
    calls = []

    def upload(files):
        calls.append(list(files))
        if files[0] == image_files[1]:
            raise CatalogApiError("storage down", status_code=503)
        return [f"https://cdn/{f.name}" for f in files]

    client.upload_images.side_effect = upload
    editor = _create_editor(client, name="A", sku="A1", price=10, stock=1)
    for name in ("B", "C"):
        editor.add_variant()
        index = len(editor.draft.variants) - 1
        editor.update_variant(index, "name", name)
        editor.update_variant(index, "sku", f"{name}1")
        editor.update_variant(index, "price", 20)
    for i in range(3):
        editor.add_variant_images(i, [image_files[i]])

    result = editor.submit()

    assert result.ok
    assert calls == [[image_files[0]], [image_files[1]], [image_files[2]]]
    assert [v["images"] for v in result.payload["variants"]] == [
        ["https://cdn/img0.jpg"], [], ["https://cdn/img2.jpg"],
    ]
    assert [n.scope for n in editor.notices.errors()] == ["variant:B"]


def test_edit_payload_keeps_variant_ids_and_merges_images(client, image_files):
    record = {
        "_id": "p1", "name": "Pad", "slug": "curated-pad", "description": "d", "brand": "",
        "images": ["https://cdn/old-global.jpg"],
        "variants": [
            {"_id": "v1", "name": "Std", "sku": "S", "priceDifference": 300, "stock": 2, "isDefault": True,
             "images": ["https://cdn/e1.jpg", "https://cdn/e2.jpg"]},
        ],
    }
    editor = ProductEditor.for_edit(record, client=client)
    editor.set_name("Pad v2")
    editor.add_variant_images(0, [image_files[3]])

    result = editor.submit()

    assert result.ok
    payload = result.payload
    assert payload["slug"] == "curated-pad"
    assert "brand" not in payload and "specs" not in payload and "stock" not in payload
    assert payload["images"] == []
    assert payload["variants"] == [{
        "_id": "v1", "name": "Std", "sku": "S", "price": 300, "stock": 2,
        "images": ["https://cdn/e1.jpg", "https://cdn/e2.jpg", "https://cdn/img3.jpg"],
        "isDefault": True,
    }]
    client.update_product.assert_called_once_with("p1", payload)
    client.create_product.assert_not_called()


def test_simple_priced_payload(client, image_files):
    draft = _simple_draft(stock=7)
    draft.global_images.add_files([image_files[0]])

    result = SubmissionAssembler(client, EditorMode.EDIT).submit(draft)

    assert result.ok
    assert result.payload["images"] == ["https://cdn/g.jpg", "https://cdn/img0.jpg"]
    assert result.payload["stock"] == 7
    assert result.payload["basePrice"] == 0
    assert "variants" not in result.payload
    client.upload_images.assert_called_once_with([image_files[0]])


# --- submission failures ---

def test_server_message_is_surfaced_verbatim(client):
    client.create_product.side_effect = CatalogApiError("Slug déjà utilisé", status_code=409,
                                                        server_message="Slug déjà utilisé")
    editor = _create_editor(client, name="A", sku="A1", price=10, stock=1)

    result = editor.submit()

    assert not result.ok
    assert result.error == "submission_failed"
    assert result.error_detail == "Slug déjà utilisé"
    assert editor.notices.errors()[-1].message == "Slug déjà utilisé"
    assert editor.assembler.history[-2:] == [SubmissionState.FAILED, SubmissionState.EDITING]


def test_generic_message_when_server_gives_none_and_retry_works(client):
    client.create_product.side_effect = [CatalogApiError("POST /products 返回 502", status_code=502), {"_id": "x"}]
    editor = _create_editor(client, name="A", sku="A1", price=10, stock=1)

    first = editor.submit()
    assert first.error_detail == "创建商品失败"
    assert editor.draft.variants[0].sku == "A1"

    second = editor.submit()
    assert second.ok
    assert client.create_product.call_count == 2


def test_submit_is_refused_while_busy(client):
    assembler = SubmissionAssembler(client, EditorMode.CREATE)
    assembler.state = SubmissionState.UPLOADING

    result = assembler.submit(ProductDraft())

    assert result.error == "submission_in_progress"
    _no_network(client)


def test_build_payload_folds_specs_and_omits_blank_brand():
    draft = ProductDraft(name=" N ", slug="n", description=" D ", brand="  ",
                         specs=SpecList([SpecEntry("k", "v"), SpecEntry("", "x")]))
    draft.variants.add()
    draft.variants.update(0, "price", 12)
    draft.variants[0].images.add_urls(["https://cdn/1.jpg"])
    draft.global_images.add_urls(["https://cdn/ignored.jpg"])

    payload = build_payload(draft)

    assert payload["name"] == "N" and payload["description"] == "D"
    assert "brand" not in payload
    assert payload["specs"] == {"k": "v"}
    assert payload["images"] == []
    assert payload["variants"][0]["images"] == ["https://cdn/1.jpg"]


def test_edit_mode_requires_product_id(client):
    with pytest.raises(ValueError):
        SubmissionAssembler(client, EditorMode.EDIT, notices=NoticeBoard()).submit(ProductDraft())


def test_retry_only_reports_notices_from_the_latest_attempt(client, image_files):
    client.upload_images.side_effect = [CatalogApiError("timeout"), ["https://cdn/ok.jpg"]]
    editor = _create_editor(client, name="A", sku="A1", price=10, stock=1)
    editor.add_variant_images(0, image_files[:1])
    client.create_product.side_effect = [CatalogApiError("POST /products 返回 502", status_code=502), {"_id": "x"}]

    assert not editor.submit().ok
    assert [n.scope for n in editor.notices.errors()] == ["variant:A", "product"]

    assert editor.submit().ok
    assert editor.notices.errors() == []
