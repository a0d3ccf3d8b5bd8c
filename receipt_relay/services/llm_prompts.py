"""LLM prompt templates for receipt extraction and the finance assistant."""

from receipt_relay.models.enums import ReceiptCategory

RECEIPT_OUTPUT_SHAPE = """{
  "storeName": "Store Name",
  "date": "YYYY-MM-DD",
  "items": [
    {
      "name": "Item Name",
      "price": 0.00,
      "quantity": 1.0,
      "category": "Food & Dining"
    }
  ]
}"""


def get_receipt_extraction_prompt(receipt_text: str) -> str:
    """Generate the prompt for extracting a receipt from OCR text."""
    categories = ", ".join(category.value for category in ReceiptCategory)
    return f"""Extract receipt information from this text and return ONLY a valid JSON object with this exact structure:

{RECEIPT_OUTPUT_SHAPE}

Use these categories only: {categories}

Pricing rules:
- "price" is the unit price. For a regular line like "MILK $3.99" use price 3.99 and quantity 1.0.
- For items sold by weight (e.g. "TOMATOES $2.99/lb 0.3 lb $0.90"), put the per-unit rate in "price" (2.99) and the weight purchased in "quantity" (0.3). Quantities may be fractional.
- Never put the line total in "price": the line total is always price x quantity.
- Skip tax, subtotal, total, payment and change lines.

Receipt text:
{receipt_text}

Return only the JSON object, no other text."""


ASSISTANT_SYSTEM_PROMPT = """You are Budgy, a friendly personal-finance assistant inside a receipt and budgeting app.

Help users understand their spending, build budgets, and save money.
- Keep answers concise and practical (a few short paragraphs or a short list).
- Use plain language and concrete numbers when the user provides them.
- Do not give legal, tax or investment advice; suggest a professional when needed.
- If a question is unrelated to personal finance, answer briefly and steer back to budgeting."""
