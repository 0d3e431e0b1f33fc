from __future__ import annotations

from typing import Optional


GREETING_TEMPLATE = (
    "Hi{name_part}, this is the {brand} concierge assistant. I'm an automated assistant following up "
    "about the profit analysis you requested for your Airbnb. Did you get the text we sent with your numbers?"
)

RECEIVED_ANALYSIS = "Great! How did the numbers compare to what you're currently seeing?"
MISSED_ANALYSIS = (
    "No problem, I'll make sure we resend that. In the meantime, I can walk you through the highlights quickly."
)
CONFIRM_ANALYSIS_REPROMPT = "Just to confirm, did you receive the profit analysis text?"

STRATEGIST_PITCH = (
    "That makes sense. Most homeowners I speak with want a quick 15-minute call with our profit strategist "
    "to see how we typically boost revenue and reduce costs. Would you like me to set that up?"
)

OFFER_TIMES_TEMPLATE = "Awesome. I have {offer_a} or {offer_b}. Which works better for you?"
OFFER_DECLINED = (
    "Got it, thanks for your time today. If it's helpful, I can text you the analysis summary again. "
    "Have a great day!"
)
PERIOD_PREFERENCE_PROMPT = "No worries. Would mornings or afternoons generally work better for you?"

TIME_REPROMPT_TEMPLATE = "I can do {offer_a} or {offer_b}. Which would you prefer?"
BOOKED_TEMPLATE = (
    "Perfect, I've booked you for {slot}. You'll get a confirmation text and calendar invite shortly. "
    "Anything else I can help with?"
)

CONFIRM_CLOSING = "Great, thanks again, and talk soon!"
GENERIC_CLOSING = "Thanks for your time today. Have a great day!"


def greeting(brand: str, name: Optional[str] = None) -> str:
    name = (name or "").strip()
    name_part = f" {name}" if name else ""
    return GREETING_TEMPLATE.format(name_part=name_part, brand=brand)


def compose_offer_times(offer_a: str, offer_b: str) -> str:
    return OFFER_TIMES_TEMPLATE.format(offer_a=offer_a, offer_b=offer_b)


def compose_time_reprompt(offer_a: str, offer_b: str) -> str:
    return TIME_REPROMPT_TEMPLATE.format(offer_a=offer_a, offer_b=offer_b)


def compose_booking_confirmation(slot: str) -> str:
    return BOOKED_TEMPLATE.format(slot=slot)


__all__ = [
    "CONFIRM_ANALYSIS_REPROMPT",
    "CONFIRM_CLOSING",
    "GENERIC_CLOSING",
    "MISSED_ANALYSIS",
    "OFFER_DECLINED",
    "PERIOD_PREFERENCE_PROMPT",
    "RECEIVED_ANALYSIS",
    "STRATEGIST_PITCH",
    "compose_booking_confirmation",
    "compose_offer_times",
    "compose_time_reprompt",
    "greeting",
]
