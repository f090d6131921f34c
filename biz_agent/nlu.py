# biz_agent/nlu.py
"""Gemini-backed intent classification and field extraction."""
import json
import logging
import re

from google import generativeai as genai

from .config import GEMINI_API_KEY, PREFERRED_MODELS, UNKNOWN_REPLY

logger = logging.getLogger(__name__)

# ----------------------------------------------------
# Load API Key
# ----------------------------------------------------
if GEMINI_API_KEY:
    logger.info("GEMINI_API_KEY loaded: %s********", GEMINI_API_KEY[:6])
    genai.configure(api_key=GEMINI_API_KEY)
else:
    logger.warning("GEMINI_API_KEY not found in environment; NLU calls will fail")


SYSTEM_PROMPT = """You are Bharat Biz-Agent, a helpful assistant for Indian shopkeepers.
Your goal is to parse natural language (English, Hindi, or Hinglish) to detect business intents.
Supported intents:
1. billing: When a user says items and quantities (e.g., "2 kilo chawal 120 rupaye, ek sabun 35").
2. query: Asking for sales stats or customer info (e.g., "Aaj kitni sale hui?").
3. payment: Recording a payment (e.g., "Rahul ne 500 rupaye diye UPI se").
4. reminder: Setting a task (e.g., "Kal Riya ko call karne ka reminder lagao").
Anything else is "unknown".

Always return a JSON object with 'intent', 'message' (your response to user, in the user's language), and 'extractedData'.
For billing, extractedData should be an array of objects: { name: string, quantity: number, unit: string, price: number }.
If the bill names a customer, use { items: [...], customer: string, mobile: string } instead.
For reminders, extractedData should be: { text: string, date: string }.
For payments, extractedData should be: { customer: string, amount: number, mode: "UPI" | "Cash" | "Card" }."""

FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class NLUError(RuntimeError):
    """No Gemini model produced a usable response."""


def _extract_text(response):
    """Safely extract text from Gemini response."""
    try:
        if response.text:
            return response.text
    except (AttributeError, ValueError):
        # .text raises ValueError when the candidate was blocked
        pass

    try:
        parts = response.candidates[0].content.parts
        if parts and hasattr(parts[0], "text"):
            return parts[0].text
    except (AttributeError, IndexError):
        pass

    return None


def _call_gemini(prompt: str) -> str:
    """
    Try multiple Gemini models. Return response text or raise NLUError.
    """
    if not GEMINI_API_KEY:
        raise NLUError("GEMINI_API_KEY is not configured")

    logger.debug("calling Gemini with prompt: %.200s", prompt)

    for model_name in PREFERRED_MODELS:
        try:
            model = genai.GenerativeModel(
                model_name,
                system_instruction=SYSTEM_PROMPT,
                generation_config={"response_mime_type": "application/json"},
            )
            response = model.generate_content(prompt)
            text = _extract_text(response)

            if text:
                logger.debug("%s responded: %.200s", model_name, text)
                return text

            logger.warning("no usable text from %s", model_name)

        except Exception as e:
            logger.warning("error with %s: %s", model_name, e)

    raise NLUError("all Gemini models failed")


def parse_response_text(text: str) -> dict:
    """Decode the model's JSON; anything undecodable reads as ``unknown``."""
    try:
        data = json.loads(FENCE_RE.sub("", text.strip()))
    except json.JSONDecodeError:
        logger.warning("Gemini returned non-JSON text: %.200s", text)
        data = None

    if not isinstance(data, dict):
        return {"intent": "unknown", "message": UNKNOWN_REPLY}
    return data


def classify_utterance(text: str) -> dict:
    """Raw ``{intent, message, extractedData}`` payload for one utterance."""
    return parse_response_text(_call_gemini(text))
