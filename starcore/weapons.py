import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger("starcore.weapons")

WEAPONS_DIR = "items/active/weapons"
WEAPON_SUFFIX = ".activeitem"
MAX_ITEM_LEVEL = 10


def item_level_price_multiplier(level: int) -> float:
    if level > MAX_ITEM_LEVEL:
        return 5.5
    return level * 0.5 + 0.5


def weapon_damage_level_multiplier(level: int) -> float:
    if level > MAX_ITEM_LEVEL:
        return 5.5
    return level * 0.5 + 0.5


@dataclass(frozen=True)
class ValueOrRange:
    """A fixed stat, or a [min, max] range picked by a per-item factor."""
    value: float = math.nan
    low: float = math.nan
    high: float = math.nan

    @property
    def is_value(self) -> bool:
        return not math.isnan(self.value)

    @classmethod
    def from_json(cls, raw):
        if raw is None:
            return ZERO
        if isinstance(raw, bool):
            raise ValueError(f"Cannot read a weapon stat from {raw!r}")
        if isinstance(raw, (int, float)):
            return cls(value=float(raw))
        if isinstance(raw, list) and len(raw) >= 2:
            return cls(low=float(raw[0]), high=float(raw[1]))
        raise ValueError(f"Cannot read a weapon stat from {raw!r}")

    def at(self, factor: float) -> float:
        if self.is_value:
            return self.value
        return self.low + (self.high - self.low) * factor

    def __str__(self):
        if self.is_value:
            return str(self.value)
        return f"[{self.low:f}, {self.high:f}]"


ZERO = ValueOrRange(value=0.0)


@dataclass(frozen=True)
class WeaponConfig:
    name: str
    short_description: str
    tooltip_kind: str
    category: str
    price: int
    fire_time: ValueOrRange
    base_dps: ValueOrRange
    energy_usage: ValueOrRange

    def __str__(self):
        return (f"WeaponConfig {self.name} fireTime: {self.fire_time}, "
                f"baseDps: {self.base_dps}, energyUsage: {self.energy_usage}")


@dataclass(frozen=True)
class WeaponStats:
    level: int
    price: int
    damage_per_shot: float
    speed: float
    energy_per_shot: float


def _factor(stat, ability, key):
    factor = ability.get_by_key(key)
    if factor is None:
        return 0.0
    return stat.at(factor.as_float())


class Weapons:
    """Weapon item name -> WeaponConfig, built from the .activeitem files of an asset archive."""

    def __init__(self, configs: Dict[str, WeaponConfig]):
        self.configs = configs

    @classmethod
    def from_assets(cls, assets, root=WEAPONS_DIR):
        configs = {}
        for node in assets.find_files(root, WEAPON_SUFFIX):
            item = assets.get_json(node.path)
            ability = item.get("primaryAbility")
            if ability is None:
                continue
            config = WeaponConfig(
                name=item["itemName"],
                short_description=item["shortdescription"],
                tooltip_kind=item.get("tooltipKind", ""),
                category=item["category"],
                price=int(item["price"]),
                fire_time=ValueOrRange.from_json(ability.get("fireTime")),
                base_dps=ValueOrRange.from_json(ability.get("baseDps")),
                energy_usage=ValueOrRange.from_json(ability.get("energyUsage")),
            )
            configs[config.name] = config
        logger.info(f"Loaded {len(configs)} weapon configs")
        return cls(configs)

    def get(self, name) -> Optional[WeaponConfig]:
        return self.configs.get(name)

    def __len__(self):
        return len(self.configs)

    def __iter__(self):
        return iter(self.configs.values())

    def item_stats(self, item) -> Optional[WeaponStats]:
        """Level-scaled stats of an item record from a container or inventory.

        None when the item is not a known weapon or was generated without a
        primary ability.
        """
        config = self.get(item.get_by_path("content/name").as_string())
        ability = item.get_by_path("content/parameters/primaryAbility")
        if config is None or ability is None:
            return None
        level = item.get_by_path("content/parameters/level").as_int()

        base_dps = _factor(config.base_dps, ability, "baseDpsFactor")
        fire_time = _factor(config.fire_time, ability, "fireTimeFactor")
        energy_usage = _factor(config.energy_usage, ability, "energyUsageFactor")
        return WeaponStats(
            level=level,
            price=int(config.price * item_level_price_multiplier(level)),
            damage_per_shot=base_dps * fire_time * weapon_damage_level_multiplier(level),
            speed=1.0 / fire_time if fire_time else math.inf,
            energy_per_shot=energy_usage * fire_time,
        )
