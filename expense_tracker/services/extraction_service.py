"""
Receipt extraction through a hosted chat-completions model.

The model only returns a best-effort guess. Everything it says goes through
the coerce_* helpers before it reaches the rest of the application, and the
same helpers normalize line items on manual save.
"""

import json
import logging
import math
import re
from datetime import date
from typing import Any

import httpx

from expense_tracker.config import settings
from expense_tracker.core.exceptions import ExtractionException, ValidationException
from expense_tracker.models.expense import ExpenseCategory, PaymentMethod
from expense_tracker.schemas.expense_schemas import ExtractedItem, ExtractedReceipt

logger = logging.getLogger(__name__)

EXTRACTION_FAILED_MESSAGE = "Failed to process receipt image. Please try again."
SUGGESTION_FAILED_MESSAGE = "Failed to suggest a category. Please choose one manually."

_DATA_URI_RE = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,(?P<data>[A-Za-z0-9+/=\s]+)$")
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")

_CATEGORIES = ", ".join(c.value for c in ExpenseCategory)
_PAYMENT_METHODS = ", ".join(m.value for m in PaymentMethod)

RECEIPT_PROMPT = f"""You are an expert at extracting structured data from receipts.
Analyze the provided receipt image and return a JSON object with these keys:

- "company": the name of the company the receipt is from.
- "items": a list of purchased items. For each item:
  - "name": the name of the item.
  - "quantity": the quantity. If not explicitly mentioned, use 1.
  - "net_price": the final amount paid for the line after any discount.
- "category": one of: {_CATEGORIES}. Infer it from the items and company.
- "expense_date": the date on the receipt as YYYY-MM-DD, or null if not visible.
- "payment_method": one of: {_PAYMENT_METHODS}. Use "other" if not determinable.

All numeric fields must be JSON numbers. Return only the JSON object."""

CATEGORY_PROMPT = f"""You are an expert in expense categorization.
Given the company name and items of a receipt, answer with exactly one
category from this list and nothing else: {_CATEGORIES}."""


# --- Coercion ---------------------------------------------------------------


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_quantity(value: Any) -> float:
    """Missing, non-numeric or non-positive quantities become 1"""
    number = _to_number(value)
    if number is None or number <= 0:
        return 1.0
    return number


def coerce_net_price(value: Any) -> float:
    """Missing or non-numeric prices become 0"""
    number = _to_number(value)
    if number is None:
        return 0.0
    return round(number, 2)


def coerce_category(value: Any) -> ExpenseCategory:
    if isinstance(value, str):
        try:
            return ExpenseCategory(value.strip().lower())
        except ValueError:
            pass
    return ExpenseCategory.OTHER


def coerce_payment_method(value: Any) -> PaymentMethod:
    if isinstance(value, str):
        try:
            return PaymentMethod(value.strip().lower())
        except ValueError:
            pass
    return PaymentMethod.OTHER


def coerce_expense_date(value: Any, today: date | None = None) -> date:
    """Parse YYYY-MM-DD (a trailing time part is ignored); fall back to today"""
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    return today or date.today()


def coerce_item(raw: Any) -> ExtractedItem:
    """
    Normalize one line item.

    Older model answers carry unit_price/discount instead of net_price; the
    net price is then quantity * unit_price - discount.
    """
    if not isinstance(raw, dict):
        raw = {}
    name = str(raw.get("name") or "").strip() or "Item"
    quantity = coerce_quantity(raw.get("quantity"))

    net_price = raw.get("net_price", raw.get("netPrice"))
    if net_price is None and raw.get("unit_price") is not None:
        unit_price = _to_number(raw.get("unit_price")) or 0.0
        discount = _to_number(raw.get("discount")) or 0.0
        net_price = quantity * unit_price - discount

    return ExtractedItem(name=name[:255], quantity=quantity, net_price=coerce_net_price(net_price))


def normalize_extraction(raw: dict, today: date | None = None) -> ExtractedReceipt:
    """Coerce a raw model answer into the internal receipt shape"""
    raw_items = raw.get("items")
    items = [coerce_item(item) for item in raw_items] if isinstance(raw_items, list) else []
    return ExtractedReceipt(
        company=str(raw.get("company") or "").strip()[:255],
        items=items,
        category=coerce_category(raw.get("category")),
        payment_method=coerce_payment_method(raw.get("payment_method", raw.get("paymentMethod"))),
        expense_date=coerce_expense_date(raw.get("expense_date", raw.get("expenseDate")), today),
        total_amount=round(sum(item.net_price for item in items), 2),
    )


def validate_data_uri(photo_data_uri: str) -> str:
    """
    Check the photo is an image data URI with base64 payload.

    Returns:
        The MIME type

    Raises:
        ValidationException: If the URI is not 'data:image/<type>;base64,<data>'
    """
    match = _DATA_URI_RE.match(photo_data_uri.strip())
    if not match:
        raise ValidationException(
            "Photo must be a data URI in the form 'data:image/<type>;base64,<data>'"
        )
    return match.group("mime")


def parse_json_content(content: str) -> dict:
    """Parse the model's JSON answer, tolerating a markdown code fence"""
    text = _CODE_FENCE_RE.sub("", content.strip())
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError("model answer is not a JSON object")
    return payload


# --- Model call -------------------------------------------------------------


async def create_chat_completion(messages: list[dict], json_mode: bool = False) -> str:
    """
    Send one chat-completions request and return the answer text.

    No retries: any failure is raised once as ExtractionException.
    """
    if not settings.OPENAI_API_KEY:
        raise ExtractionException("missing OpenAI API key")

    headers = {
        "Authorization": f"Bearer {settings.OPENAI_API_KEY}",
        "Content-Type": "application/json",
    }
    payload: dict[str, Any] = {
        "model": settings.OPENAI_MODEL,
        "messages": messages,
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}

    try:
        async with httpx.AsyncClient(timeout=settings.OPENAI_TIMEOUT_SECONDS) as client:
            resp = await client.post(settings.chat_completions_url, json=payload, headers=headers)
    except httpx.TimeoutException:
        raise ExtractionException("upstream timeout")
    except httpx.RequestError:
        raise ExtractionException("upstream connection error")

    if resp.status_code != 200:
        err_message = "upstream error"
        try:
            body = resp.json()
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                err_message = body["error"].get("message") or err_message
        except ValueError:
            logger.warning("non-json upstream error: %s", resp.text)
        raise ExtractionException(f"upstream status {resp.status_code}: {err_message}")

    try:
        data = resp.json()
    except ValueError:
        logger.warning("non-json upstream body: %s", resp.text[:200])
        raise ExtractionException("invalid upstream body")
    if not isinstance(data, dict):
        raise ExtractionException("invalid upstream body")

    choices = data.get("choices") or []
    if not isinstance(choices, list):
        raise ExtractionException("invalid upstream body")
    if not choices:
        raise ExtractionException("empty response")
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        raise ExtractionException("invalid upstream body")

    text = message.get("content")
    if not text:
        raise ExtractionException("missing content")
    if not isinstance(text, str):
        raise ExtractionException("invalid upstream body")
    return text


async def extract_receipt_data(photo_data_uri: str) -> ExtractedReceipt:
    """
    Extract expense fields from a receipt photo.

    Raises:
        ValidationException: If the photo is not an image data URI
        ExtractionException: If the model call or its answer fails, with a
            single user-facing message and no partial result
    """
    mime = validate_data_uri(photo_data_uri)
    messages = [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": RECEIPT_PROMPT},
                {"type": "image_url", "image_url": {"url": photo_data_uri.strip()}},
            ],
        }
    ]

    try:
        content = await create_chat_completion(messages, json_mode=True)
        receipt = normalize_extraction(parse_json_content(content))
    except (ExtractionException, ValueError) as e:
        logger.error("Error processing receipt image (%s): %s", mime, e)
        raise ExtractionException(EXTRACTION_FAILED_MESSAGE) from e

    logger.info(
        "Extracted receipt with %d items, category=%s", len(receipt.items), receipt.category.value
    )
    return receipt


async def suggest_category(company: str, items: list[tuple[str, float]]) -> ExpenseCategory:
    """Ask the model for the category of a receipt given its vendor and items"""
    lines = "\n".join(f"- {name}: {price}" for name, price in items) or "- (no items)"
    messages = [
        {"role": "system", "content": CATEGORY_PROMPT},
        {"role": "user", "content": f"Company Name: {company}\nItems:\n{lines}"},
    ]

    try:
        content = await create_chat_completion(messages)
    except ExtractionException as e:
        logger.error("Error suggesting expense category: %s", e)
        raise ExtractionException(SUGGESTION_FAILED_MESSAGE) from e

    return coerce_category(content.strip().strip(".\"'"))
