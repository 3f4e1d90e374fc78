# app/core/board/normalize.py
"""
ORDER NORMALIZER - Turn a raw board into the dashboard's order records

Purpose:
    1. Find columns by id OR by human title ("Mock-up" → "mock_up")
    2. Work out which production stages are done from the status label
    3. Pull the mockup URL, LED length, waterproof flag and shipping method
    4. Sort: closest deadline first, finished orders at the very end

Data Flow:
    Board → ColumnMap → normalize_order() per item → order_orders() → list

Every field extractor returns a FieldResult. A field that can't be read
falls back to its default, the order itself is never dropped.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.core import display
from app.core.errors import TransformError
from app.core.schemas import Board, Column, ColumnValue, FieldResult, Item, NormalizedOrder

logger = logging.getLogger(__name__)


# ============================================================================
# STEP 1: COLUMN RESOLUTION
# ============================================================================


def normalize_title(title: Optional[str]) -> str:
    """
    Build the lookup key for a column title.

    Examples:
        "Mock-up" → "mock_up"
        "LED Länge" → "led_länge"
        "  Versandart / Lieferung " → "versandart_lieferung"
    """
    if not title:
        return ""
    return re.sub(r"[\W_]+", "_", title.lower()).strip("_")


class ColumnMap:
    """Lookup of board columns by raw id and by normalized title."""

    def __init__(self, columns: Sequence[Column]):
        self.by_id: Dict[str, Column] = {}
        self.by_title: Dict[str, Column] = {}

        for column in columns:
            self.by_id[column.id] = column
            key = normalize_title(column.title)
            # First column wins when two titles normalize the same
            if key and key not in self.by_title:
                self.by_title[key] = column

    def resolve(self, *keys: str) -> Optional[Column]:
        """Try each key as a column id first, then as a title."""
        for key in keys:
            if not key:
                continue
            if key in self.by_id:
                return self.by_id[key]
            column = self.by_title.get(normalize_title(key))
            if column is not None:
                return column
        return None

    def by_type(self, column_type: str) -> Optional[Column]:
        return next((c for c in self.by_id.values() if c.type == column_type), None)

    def search(self, fragment: str) -> Optional[Column]:
        """First column whose normalized title contains `fragment`."""
        fragment = normalize_title(fragment)
        if not fragment:
            return None
        for key, column in self.by_title.items():
            if fragment in key:
                return column
        return None


def column_value(item: Item, column: Optional[Column]) -> Optional[ColumnValue]:
    if column is None:
        return None
    return next((cv for cv in item.column_values if cv.id == column.id), None)


def get_column_value(item: Item, column_map: ColumnMap, *keys: str) -> Optional[ColumnValue]:
    """Item value for the first key that resolves to a column."""
    return column_value(item, column_map.resolve(*keys))


def column_text(value: Optional[ColumnValue]) -> str:
    if value is None or value.text is None:
        return ""
    return value.text.strip()


# ============================================================================
# STEP 2: PRODUCTION STAGES
# ============================================================================


@dataclass(frozen=True)
class StageDefinition:
    name: str
    aliases: Tuple[str, ...]


# Pipeline order matters: a status at index i means stages [0, i) are done
STAGES: Tuple[StageDefinition, ...] = (
    StageDefinition("CNC", ("cnc", "fräs", "фрез")),
    StageDefinition("LED", ("led", "лед")),
    StageDefinition("Silikon", ("silikon", "silicone", "силикон")),
    StageDefinition("UV Print", ("uv print", "uv-print", "uv druck", "uv-druck", "uv", "уф")),
    StageDefinition("Lack", ("lack", "paint", "лак")),
    StageDefinition("Verpackung", ("verpackung", "packaging", "упаков")),
)

STAGE_NAMES: List[str] = [stage.name for stage in STAGES]

# Statuses meaning the sign is built and waiting for pickup / shipped.
# Compared against the whole status: "CNC fertig" is not a finished order.
TERMINAL_ALIASES: Tuple[str, ...] = (
    "abholbereit",
    "fertig",
    "ready for pickup",
    "finished",
    "done",
    "готово",
    "завершен",
    "завершено",
)

# Short aliases must start a word so "uv" does not hit "Neuverpackung"
SHORT_ALIAS_LENGTH = 3


def _alias_pattern(alias: str) -> re.Pattern:
    if len(alias) <= SHORT_ALIAS_LENGTH:
        return re.compile(r"(?<!\w)" + re.escape(alias))
    return re.compile(re.escape(alias))


STAGE_PATTERNS: Tuple[Tuple[re.Pattern, ...], ...] = tuple(
    tuple(_alias_pattern(alias) for alias in stage.aliases) for stage in STAGES
)


def is_terminal_status(status: Optional[str]) -> bool:
    status = (status or "").strip().lower()
    if not status:
        return False
    return status in TERMINAL_ALIASES


def current_stage_index(status: Optional[str]) -> Optional[int]:
    """Index of the stage the order is in right now, None if unknown."""
    status = (status or "").strip().lower()
    if not status:
        return None

    for index, patterns in enumerate(STAGE_PATTERNS):
        if any(pattern.search(status) for pattern in patterns):
            return index
    return None


def infer_completed_stages(status: Optional[str]) -> List[str]:
    """
    Stages finished before the current one.

    Examples:
        "CNC" → []
        "LED" → ["CNC"]
        "In Lack" → ["CNC", "LED", "Silikon", "UV Print"]
        "Abholbereit" → all six stages
        "Neu" → []

    The current stage itself is in progress, so it is not included.
    """
    if is_terminal_status(status):
        return list(STAGE_NAMES)

    index = current_stage_index(status)
    if index is None:
        return []
    return STAGE_NAMES[:index]


# ============================================================================
# STEP 3: FIELD EXTRACTORS
# ============================================================================

MOCKUP_TITLES = ("mock-up", "mockup", "mock_up")
LED_TITLES = ("led länge", "led laenge", "led_lange", "led length", "led")
WATERPROOF_TITLES = ("wasserdicht", "waterproof")
SHIPPING_TITLES = ("versandart", "versand", "shipping")
DEADLINE_TITLES = ("deadline", "datum", "date")
STATUS_TITLES = ("status",)

AFFIRMATIVE_WORDS = frozenset({"ja", "yes", "true", "1", "v", "да"})


def _load_json(raw: Optional[str], field: str) -> Tuple[Any, Optional[TransformError]]:
    if not raw:
        return None, None
    try:
        return json.loads(raw), None
    except (TypeError, ValueError) as e:
        logger.warning(f"Failed to parse JSON for {field}: {e}")
        return None, TransformError(field, f"invalid JSON: {e}")


def _first_file_url(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    for key in ("files", "assets"):
        files = payload.get(key)
        if isinstance(files, list) and files and isinstance(files[0], dict):
            url = files[0].get("url") or files[0].get("public_url")
            if url:
                return str(url)
    return ""


def extract_mockup_url(item: Item, column_map: ColumnMap) -> FieldResult[str]:
    """
    Mockup image URL from the file column.

    Order of attempts:
        1. JSON value → files[0].url
        2. plain text of the column (monday puts the URL there too)
        3. ""
    """
    column = column_map.resolve(*MOCKUP_TITLES) or column_map.by_type("file")
    value = column_value(item, column)
    if value is None:
        return FieldResult.default("")

    payload, error = _load_json(value.value, "mockupUrl")
    url = _first_file_url(payload)
    if url:
        return FieldResult(url)

    text = column_text(value)
    if text:
        # Multiple files come as "url1, url2"
        return FieldResult(text.split(",")[0].strip())

    return FieldResult.default("", error)


# Plain decimal, comma or period as separator: "12,5", "3.25", "7"
LED_LENGTH_PATTERN = re.compile(r"^[0-9]+(?:[.,][0-9]+)?$")


def parse_led_length(text: Optional[str]) -> FieldResult[float]:
    """
    Parse LED strip length in metres.

    Examples:
        "12,5" → 12.5
        "3.2" → 3.2
        "" → 0 (default)
        "abc", "1e3", "-4" → 0 (default, with error)
    """
    if text is None or not str(text).strip():
        return FieldResult.default(0.0)

    cleaned = str(text).strip()
    if not LED_LENGTH_PATTERN.match(cleaned):
        return FieldResult.default(0.0, TransformError("ledLength", f"not a number: {text!r}"))

    return FieldResult(float(cleaned.replace(",", ".")))


def parse_affirmative(text: Optional[str]) -> FieldResult[bool]:
    if text is None or not str(text).strip():
        return FieldResult.default(False)
    return FieldResult(str(text).strip().lower() in AFFIRMATIVE_WORDS)


def extract_led_length(item: Item, column_map: ColumnMap) -> FieldResult[float]:
    column = column_map.resolve(*LED_TITLES) or column_map.search("led")
    value = column_value(item, column)
    if value is None:
        return FieldResult.default(0.0)
    return parse_led_length(value.text)


def extract_waterproof(item: Item, column_map: ColumnMap) -> FieldResult[bool]:
    column = column_map.resolve(*WATERPROOF_TITLES) or column_map.search("wasserdicht")
    return parse_affirmative(column_text(column_value(item, column)))


def extract_shipping(item: Item, column_map: ColumnMap) -> FieldResult[str]:
    column = column_map.resolve(*SHIPPING_TITLES) or column_map.search("versand")
    text = column_text(column_value(item, column))
    if not text:
        return FieldResult.default("")
    return FieldResult(text)


def extract_deadline(item: Item, column_map: ColumnMap) -> FieldResult[Optional[str]]:
    # "Deadline" may exist but be empty while "Datum" is filled
    for key in DEADLINE_TITLES:
        text = column_text(get_column_value(item, column_map, key))
        if text:
            return FieldResult(text)
    return FieldResult.default(None)


def extract_status(item: Item, column_map: ColumnMap) -> FieldResult[str]:
    column = column_map.resolve(*STATUS_TITLES) or column_map.by_type("status")
    text = column_text(column_value(item, column))
    if not text:
        return FieldResult.default("")
    return FieldResult(text)


# ============================================================================
# STEP 4: BUILD AND ORDER
# ============================================================================


def normalize_order(
    item: Item, column_map: ColumnMap, today: Optional[date] = None
) -> NormalizedOrder:
    """Build one NormalizedOrder. Unreadable fields use their defaults."""
    status = extract_status(item, column_map)
    deadline = extract_deadline(item, column_map)
    led_length = extract_led_length(item, column_map)
    shipping = extract_shipping(item, column_map)
    mockup = extract_mockup_url(item, column_map)
    waterproof = extract_waterproof(item, column_map)

    for result in (mockup, led_length):
        if result.error is not None:
            logger.warning(f"Item {item.id}: {result.error}")

    return NormalizedOrder(
        id=item.id,
        name=item.name,
        mockup_url=mockup.value,
        deadline=deadline.value,
        status=status.value,
        led_length=led_length.value,
        wasserdicht=waterproof.value,
        versandart=shipping.value,
        completed_stages=infer_completed_stages(status.value),
        power_watts=display.calculate_power(led_length.value),
        fernbedienung=True,
        deadline_soon=display.is_deadline_soon(deadline.value, today),
        versand_icon=display.shipping_icon(shipping.value),
    )


def order_orders(orders: List[NormalizedOrder]) -> List[NormalizedOrder]:
    """
    Closest deadline first, orders without (readable) deadline after them,
    finished orders moved to the end but kept.

    Both passes are stable, so ties keep board order.
    """

    def deadline_key(order: NormalizedOrder):
        parsed = display.parse_deadline(order.deadline)
        return (parsed is None, parsed or date.min)

    by_deadline = sorted(orders, key=deadline_key)
    pending = [o for o in by_deadline if not is_terminal_status(o.status)]
    finished = [o for o in by_deadline if is_terminal_status(o.status)]
    return pending + finished


def normalize_board(board: Board, today: Optional[date] = None) -> List[NormalizedOrder]:
    column_map = ColumnMap(board.columns)
    orders = [normalize_order(item, column_map, today) for item in board.items]
    logger.info(f"Normalized {len(orders)} orders from board '{board.name}'")
    return order_orders(orders)
