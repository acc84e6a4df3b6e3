"""
Instance file parser for cutting-stock problems.

Two formats are supported:

JSON, either with an item list
    {"name": "example", "roll_width": 100,
     "items": [{"name": "a", "width": 22, "demand": 45}, ...]}
or with parallel lists
    {"roll_width": 100, "widths": [22, 42], "demand": [45, 38]}

Plain text
    # comment
    100            <- roll width
    22 45 a        <- width demand [name]
    42 38 b
"""

import json
from pathlib import Path
from typing import Dict, Any, Union
import logging

from .data_models import CuttingStockInstance
from .errors import InvalidInputError

logger = logging.getLogger(__name__)


def _number(token: str, what: str, source: str) -> float:
    try:
        value = float(token)
    except ValueError:
        raise InvalidInputError(f"{source}: expected a number for {what}, got {token!r}") from None
    return int(value) if value.is_integer() else value


def instance_from_dict(data: Dict[str, Any], name: str = "cutting_stock") -> CuttingStockInstance:
    """
    Build an instance from a JSON-like dictionary.

    Raises:
        InvalidInputError: If required keys are missing
    """
    if 'roll_width' not in data:
        raise InvalidInputError("Instance data has no 'roll_width'")

    if 'items' in data:
        try:
            widths = [item['width'] for item in data['items']]
            demand = [item['demand'] for item in data['items']]
        except (KeyError, TypeError) as e:
            raise InvalidInputError(f"Every item needs 'width' and 'demand': {e}") from e
        names = [item.get('name', f"item_{i}") for i, item in enumerate(data['items'])]
    elif 'widths' in data and 'demand' in data:
        widths = list(data['widths'])
        demand = list(data['demand'])
        names = list(data.get('names', []))
    else:
        raise InvalidInputError("Instance data needs 'items' or both 'widths' and 'demand'")

    return CuttingStockInstance(
        roll_width=data['roll_width'],
        item_widths=widths,
        demand=demand,
        item_names=[str(n) for n in names],
        name=str(data.get('name', name))
    )


def parse_json_file(filepath: Union[str, Path]) -> CuttingStockInstance:
    filepath = Path(filepath)
    with open(filepath, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"{filepath.name}: invalid JSON: {e}") from e
    return instance_from_dict(data, name=filepath.stem)


def parse_text_file(filepath: Union[str, Path]) -> CuttingStockInstance:
    """
    Parse the plain-text instance format.

    Raises:
        InvalidInputError: If the file format is invalid
    """
    filepath = Path(filepath)
    roll_width = None
    widths, demand, names = [], [], []

    with open(filepath, 'r') as f:
        for line_no, raw in enumerate(f, 1):
            line = raw.split('#', 1)[0].strip()
            if not line:
                continue
            source = f"{filepath.name}:{line_no}"
            parts = line.split()

            if roll_width is None:
                if len(parts) != 1:
                    raise InvalidInputError(f"{source}: first line must contain only the roll width")
                roll_width = _number(parts[0], "roll width", source)
                continue

            if len(parts) < 2:
                raise InvalidInputError(f"{source}: expected 'width demand [name]'")
            widths.append(_number(parts[0], "width", source))
            demand.append(_number(parts[1], "demand", source))
            names.append(" ".join(parts[2:]) or f"item_{len(names)}")

    if roll_width is None:
        raise InvalidInputError(f"{filepath.name}: file is empty")

    logger.info(f"Parsed {len(widths)} items from {filepath.name}")
    return CuttingStockInstance(
        roll_width=roll_width,
        item_widths=widths,
        demand=demand,
        item_names=names,
        name=filepath.stem
    )


def parse_instance_file(filepath: Union[str, Path]) -> CuttingStockInstance:
    """
    Load an instance, choosing the format from the file extension.

    Raises:
        FileNotFoundError: If the file doesn't exist
        InvalidInputError: If the file format is invalid
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Instance file not found: {filepath}")

    logger.info(f"Loading instance from {filepath}")
    if filepath.suffix.lower() == '.json':
        return parse_json_file(filepath)
    return parse_text_file(filepath)
