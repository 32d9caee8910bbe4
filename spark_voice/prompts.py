"""Caller-facing prompt text, keyed by stage."""

GREETING = (
    "Hi, you're through to TotalSpark Solutions. "
    "Is the cleaning for a home or for a business premises?"
)

NO_INPUT_REPROMPT = "Sorry, I didn't catch that. Could you say that again?"

ASK = {
    "need_category": "Is the cleaning for a home or for a business premises?",
    ("need_service_type", "domestic"): (
        "What type of domestic cleaning do you need. End of tenancy, deep clean, "
        "regular cleaning, post-construction, or disinfection?"
    ),
    ("need_service_type", "commercial"): (
        "What type of commercial cleaning do you need. Regular commercial cleaning, "
        "deep clean, post-construction, or disinfection?"
    ),
    "need_job_type": "Is this a one-off clean, or would you like regular cleaning?",
    "need_property_and_postcode": "Thanks. What is the property type and the postcode?",
    "need_rooms": (
        "How many bedrooms, bathrooms, toilets and kitchens need cleaning? "
        "For example, two bedrooms and one bathroom."
    ),
    "complete": (
        "Thanks, that's everything I need. "
        "We'll put your quote together and be in touch shortly."
    ),
}

REPROMPT = {
    "need_category": "Thanks. Is the cleaning for a home or for a business premises?",
    ("need_service_type", "domestic"): (
        "Sorry, which of these is closest. End of tenancy, deep clean, "
        "regular cleaning, post-construction, or disinfection?"
    ),
    ("need_service_type", "commercial"): (
        "Sorry, which of these is closest. Regular commercial cleaning, "
        "deep clean, post-construction, or disinfection?"
    ),
    "need_job_type": "Sorry, is that a one-off clean, or regular cleaning on a schedule?",
    "need_property_and_postcode": "Could you tell me the property type and the postcode?",
    "need_rooms": (
        "Sorry, I didn't get the number of rooms. "
        "How many bedrooms and bathrooms are there?"
    ),
    "complete": (
        "Thanks, we already have everything we need. "
        "The team will be in touch with your quote shortly."
    ),
}


def _lookup(table: dict, stage: str, category: str | None) -> str:
    if (stage, category) in table:
        return table[(stage, category)]
    if stage in table:
        return table[stage]
    # Service-type prompts before a category is known should not happen,
    # but the domestic wording is a safe question to ask.
    return table[(stage, "domestic")]


def ask_prompt(stage: str, category: str | None = None) -> str:
    """Question that opens a stage."""
    return _lookup(ASK, stage, category)


def reprompt(stage: str, category: str | None = None) -> str:
    """Clarifying question when a stage could not extract an answer."""
    return _lookup(REPROMPT, stage, category)
