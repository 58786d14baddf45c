from __future__ import annotations

from iiif_manifest_core.canvas import CanvasResolver, image_service_url, node_id_hint
from iiif_manifest_core.models import FileRef, ImageRef, ManifestOptions, RowInput
from iiif_manifest_core.ocr import OcrLocator

SERVER = "https://iiif.example.org/iiif/2/"
BASE_ID = "https://example.org/node/42"


class StubDimensions:
    def __init__(self, size=(1000, 1500)):
        self.size = size
        self.calls: list[tuple[str, str]] = []

    def resolve(self, image_url, image, mime_type):
        self.calls.append((image_url, mime_type))
        return self.size


def _image(file_id, name, mime_type="image/jpeg", **kw) -> ImageRef:
    return ImageRef(
        file_id=file_id,
        file_url=f"https://example.org/sites/default/files/{name}",
        relative_url=f"/sites/default/files/{name}",
        mime_type=mime_type,
        label=name,
        **kw,
    )


def _resolver(options, dimensions=None, canvas_alters=()):
    return CanvasResolver(options, dimensions or StubDimensions(), OcrLocator(options), canvas_alters=canvas_alters)


def test_canvas_shape_and_ids():
    options = ManifestOptions(image_server_base_url=SERVER)
    row = RowInput(entity_id=7, tile_images={"field_media_image": [_image(1, "p1.jpg")]})

    [canvas] = _resolver(options).resolve(row, SERVER, BASE_ID)

    image_url = "https://iiif.example.org/iiif/2/https%3A%2F%2Fexample.org%2Fsites%2Fdefault%2Ffiles%2Fp1.jpg"
    assert canvas["@id"] == f"{BASE_ID}/canvas/7"
    assert canvas["@type"] == "sc:Canvas"
    assert canvas["label"] == "p1.jpg"
    assert (canvas["width"], canvas["height"]) == (1000, 1500)

    annotation = canvas["images"][0]
    assert annotation["@id"] == f"{BASE_ID}/annotation/7"
    assert annotation["motivation"] == "sc:painting"
    assert annotation["on"] == canvas["@id"]

    resource = annotation["resource"]
    assert resource["@id"] == f"{image_url}/full/full/0/default.jpg"
    assert resource["format"] == "image/jpeg"
    assert (resource["width"], resource["height"]) == (1000, 1500)
    assert resource["service"]["@id"] == image_url
    assert resource["service"]["profile"] == "http://iiif.io/api/image/2/profiles/level2.json"
    assert "seeAlso" not in canvas


def test_relative_paths_strip_leading_slash():
    options = ManifestOptions(image_server_base_url=SERVER, use_relative_file_paths=True)
    dims = StubDimensions()
    row = RowInput(entity_id=7, tile_images={"field_media_image": [_image(1, "p 1.jpg")]})

    _resolver(options, dims).resolve(row, SERVER, BASE_ID)

    assert dims.calls[0][0] == "https://iiif.example.org/iiif/2/sites%2Fdefault%2Ffiles%2Fp+1.jpg"


def test_one_canvas_per_viewable_image_in_encounter_order():
    options = ManifestOptions(image_server_base_url=SERVER, tile_fields=("field_media_image", "field_media_file"))
    row = RowInput(
        entity_id=7,
        tile_images={
            "field_media_file": [_image(3, "c.tif", mime_type="image/tiff")],
            "field_media_image": [_image(1, "a.jpg"), _image(2, "b.jpg", viewable=False), _image(4, "d.jpg")],
            "field_unconfigured": [_image(5, "e.jpg")],
        },
    )

    canvases = _resolver(options).resolve(row, SERVER, BASE_ID)

    assert [c["label"] for c in canvases] == ["a.jpg", "d.jpg", "c.tif"]


def test_dimensions_called_once_per_image():
    options = ManifestOptions(image_server_base_url=SERVER)
    dims = StubDimensions()
    row = RowInput(entity_id=7, tile_images={"field_media_image": [_image(1, "a.jpg"), _image(2, "b.jpg")]})

    _resolver(options, dims).resolve(row, SERVER, BASE_ID)

    assert len(dims.calls) == 2


def test_ocr_field_attaches_see_also():
    options = ManifestOptions(image_server_base_url=SERVER, ocr_file_field="field_hocr")
    row = RowInput(
        entity_id=7,
        tile_images={"field_media_image": [_image(1, "a.jpg")]},
        ocr_files={"field_hocr": [FileRef(file_id=9, url="https://example.org/files/a.hocr")]},
    )

    [canvas] = _resolver(options).resolve(row, SERVER, BASE_ID)

    assert canvas["seeAlso"] == {
        "@id": "https://example.org/files/a.hocr",
        "format": "text/vnd.hocr+html",
        "profile": "http://kba.cloud/hocr-spec",
        "label": "hOCR embedded text",
    }


def test_canvas_alters_run_in_order_and_see_earlier_changes():
    options = ManifestOptions(image_server_base_url=SERVER)
    seen = []

    def first(canvas, row, alter_options):
        canvas["label"] = f"Page {row.entity_id}"

    def second(canvas, row, alter_options):
        seen.append((canvas["label"], alter_options["options"] is options))
        canvas["label"] += "!"

    row = RowInput(entity_id=7, tile_images={"field_media_image": [_image(1, "a.jpg")]})
    [canvas] = _resolver(options, canvas_alters=[first, second]).resolve(row, SERVER, BASE_ID)

    assert seen == [("Page 7", True)]
    assert canvas["label"] == "Page 7!"


def test_node_id_hint():
    assert node_id_hint("https://example.org/node/42") == "42"
    assert node_id_hint("https://example.org/media/42") is None
    assert node_id_hint("") is None


def test_image_service_url_encodes_whole_path():
    assert image_service_url("https://iiif/", "a/b c.jpg") == "https://iiif/a%2Fb+c.jpg"


def test_image_service_url_escapes_tilde():
    assert image_service_url("https://iiif", "/~user/scan 1.tif") == "https://iiif/%2F%7Euser%2Fscan+1.tif"
