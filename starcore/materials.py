import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

logger = logging.getLogger("starcore.materials")

MATERIALS_DIR = "tiles"
MATERIAL_SUFFIX = ".material"


@dataclass(frozen=True)
class Material:
    id: int
    name: str
    color: Optional[Tuple[int, int, int]]

    def __str__(self):
        return f"Material {self.id}: {self.name}"


class Materials:
    """Material id -> Material, built from the .material files of an asset archive."""

    def __init__(self, materials: Dict[int, Material]):
        self.materials = materials

    @classmethod
    def from_assets(cls, assets, root=MATERIALS_DIR):
        materials = {}
        for node in assets.find_files(root, MATERIAL_SUFFIX):
            config = assets.get_json(node.path)
            material_id = int(config["materialId"])
            color = config.get("particleColor")
            if color is not None:
                color = tuple(int(c) for c in color[:3])
            materials[material_id] = Material(material_id, config["materialName"], color)
        logger.info(f"Loaded {len(materials)} materials")
        return cls(materials)

    def get(self, material_id) -> Optional[Material]:
        return self.materials.get(material_id)

    def name_of(self, material_id, default=None):
        material = self.materials.get(material_id)
        return material.name if material else default

    def __len__(self):
        return len(self.materials)

    def __contains__(self, material_id):
        return material_id in self.materials
