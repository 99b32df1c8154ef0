"""Sensor catalog loading.

The catalog maps bit addresses inside each content area to named sensors. It is
read once at startup from a YAML file::

    content_areas:
      MELDEGRUPPEN:
        offset: 12
        positions:
          - hex: "0x075"
            name: IM Essen
            ...
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from telenot_bridge.const import CONTENT_AREA_OFFSETS
from telenot_bridge.logging_abstraction import get_logger
from telenot_bridge.protocol.exceptions import CatalogError
from telenot_bridge.structs import ContentArea, ContentAreaName, SensorCatalog, SensorPosition

logger = get_logger(__name__)


def _parse_position(area_name: str, raw: object) -> SensorPosition:
    if not isinstance(raw, dict):
        msg = f"{area_name}: position entry must be a mapping, got {type(raw).__name__}"
        raise CatalogError(msg)
    try:
        position = SensorPosition.model_validate(raw)
        _ = position.bit_address
    except ValidationError as e:
        msg = f"{area_name}: invalid position {raw!r}: {e}"
        raise CatalogError(msg) from e
    except ValueError as e:
        msg = f"{area_name}: position hex {raw.get('hex')!r} is not a hex number"
        raise CatalogError(msg) from e
    return position


def _parse_area(name: str, raw: object) -> ContentArea:
    try:
        area_name = ContentAreaName(name)
    except ValueError as e:
        msg = f"Unknown content area '{name}' (expected one of {', '.join(CONTENT_AREA_OFFSETS)})"
        raise CatalogError(msg) from e

    raw = raw or {}
    if not isinstance(raw, dict):
        msg = f"{name}: content area must be a mapping"
        raise CatalogError(msg)

    offset = raw.get("offset", CONTENT_AREA_OFFSETS[area_name.value])
    positions = tuple(_parse_position(name, entry) for entry in raw.get("positions") or [])
    return ContentArea(name=area_name, offset=int(offset), positions=positions)


def parse_catalog(data: object) -> SensorCatalog:
    """Build a catalog from already-parsed YAML data."""
    if not data:
        return SensorCatalog()
    if not isinstance(data, dict) or not isinstance(data.get("content_areas", {}), dict):
        msg = "Catalog must contain a 'content_areas' mapping"
        raise CatalogError(msg)

    areas = {}
    for name, raw_area in (data.get("content_areas") or {}).items():
        area = _parse_area(str(name), raw_area)
        areas[area.name] = area
    return SensorCatalog(areas=areas)


def load_catalog(config_file: Path) -> SensorCatalog:
    """Load the sensor catalog from a YAML file.

    Raises:
        CatalogError: the file is missing, unreadable, or describes unknown areas

    """
    logger.debug("Parsing catalog file: %s", config_file)
    try:
        with config_file.open() as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        msg = f"Catalog file not found: {config_file}"
        raise CatalogError(msg) from e
    except (OSError, yaml.YAMLError) as e:
        msg = f"Failed to parse catalog file {config_file}: {e}"
        raise CatalogError(msg) from e

    catalog = parse_catalog(data)
    logger.info(
        "Parsed catalog: %d content areas, %d positions",
        len(catalog.areas),
        len(catalog.all_positions()),
    )
    return catalog
