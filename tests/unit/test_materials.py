"""Unit tests for the material catalogue."""

from __future__ import annotations

import json

from starcore.asset_archive import SBAsset6
from starcore.materials import Materials
from tests.builders import build_archive


def material_archive() -> SBAsset6:
    dirt = {"materialId": 1, "materialName": "dirt", "particleColor": [120, 80, 40, 255]}
    platform = {"materialId": 2, "materialName": "woodplatform"}
    return SBAsset6.from_bytes(build_archive({
        "/tiles/materials/dirt.material": json.dumps(dirt).encode(),
        "/tiles/platforms/wood.material": json.dumps(platform).encode(),
        "/tiles/materials/dirt.png": b"\x89PNG",
        "/items/generic/torch.item": b"{}",
    }))


def test_from_assets_reads_material_files() -> None:
    """Every .material under tiles/ becomes a catalogue entry."""
    materials = Materials.from_assets(material_archive())

    assert len(materials) == 2
    assert materials.get(1).name == "dirt"
    assert materials.get(1).color == (120, 80, 40)
    assert materials.get(2).color is None


def test_lookup_of_unknown_material() -> None:
    """Unknown ids are absent."""
    materials = Materials.from_assets(material_archive())

    assert materials.get(99) is None
    assert materials.name_of(99, "?") == "?"
    assert materials.name_of(2) == "woodplatform"
    assert 1 in materials
