from iiif_manifest_core.iiif_logic import (
    manifest_canvases,
    search_service_ids,
    total_canvases,
    unknown_dimension_canvases,
)


def test_total_canvases_handles_missing_sequences():
    assert total_canvases({}) == 0
    assert total_canvases({"sequences": []}) == 0
    assert manifest_canvases("not a manifest") == []


def test_unknown_dimension_canvases_lists_zero_sized():
    manifest = {
        "sequences": [
            {
                "canvases": [
                    {"@id": "c/1", "width": 100, "height": 200},
                    {"@id": "c/2", "width": 0, "height": 0},
                    "junk",
                ]
            }
        ]
    }

    assert total_canvases(manifest) == 2
    assert unknown_dimension_canvases(manifest) == ["c/2"]


def test_search_service_ids():
    assert search_service_ids({"service": [{"@id": "https://example.org/search/1"}]}) == ["https://example.org/search/1"]
    assert search_service_ids({}) == []
