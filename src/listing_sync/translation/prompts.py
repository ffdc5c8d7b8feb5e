"""
Prompts for translating and shortening store listing text.
"""

from typing import Dict, List, Optional

from ..core.types import LengthUnit


PROMPT_VERSION = "v1"


TRANSLATE_SYSTEM_PROMPT = """You are a translation engine for mobile app store listing text.

RULES:
- Translate accurately and naturally for the target market
- Keep line breaks, bullet characters and formatting
- Do not add quotes, notes or explanations
- Stay within the stated length limit
- Return ONLY the translated text"""


SHORTEN_SYSTEM_PROMPT = """You are an editor for mobile app store listing text.

RULES:
- Rewrite the given text so it fits the stated length limit
- Keep the language of the input text
- Preserve the meaning and the most important selling points
- Keep line breaks where possible
- Return ONLY the rewritten text"""


def _unit_label(unit: LengthUnit) -> str:
    return "UTF-8 bytes" if LengthUnit(unit) is LengthUnit.BYTES else "characters"


def build_translate_messages(
    text: str,
    source_locale: str,
    target_locale: str,
    field_name: str,
    store_name: str,
    max_length: int,
    unit: LengthUnit,
    app_title: Optional[str] = None,
    style_instruction: Optional[str] = None,
) -> List[Dict[str, str]]:
    """
    Build the messages for one translate call.

    Args:
        text: Source text
        source_locale: Canonical source locale
        target_locale: Canonical target locale
        field_name: Listing field being translated
        store_name: Storefront display name
        max_length: Length budget
        unit: Unit of the budget
        app_title: Already-resolved app title in the target locale, used as context
        style_instruction: Free-form style guidance from the user

    Returns:
        List of message dicts
    """
    lines = [
        f"Translate the {store_name} {field_name} from {source_locale} to {target_locale}.",
        f"Maximum length: {max_length} {_unit_label(unit)}.",
    ]
    if app_title:
        lines.append(f"The app is called \"{app_title}\" in {target_locale}.")
    if style_instruction:
        lines.append(f"Style instructions: {style_instruction}")
    lines.append("")
    lines.append(text)

    return [
        {"role": "system", "content": TRANSLATE_SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(lines)},
    ]


def build_shorten_messages(
    text: str,
    target_locale: str,
    field_name: str,
    store_name: str,
    max_length: int,
    unit: LengthUnit,
    style_instruction: Optional[str] = None,
) -> List[Dict[str, str]]:
    lines = [
        f"Shorten this {store_name} {field_name} ({target_locale}) to at most "
        f"{max_length} {_unit_label(unit)}.",
    ]
    if style_instruction:
        lines.append(f"Style instructions: {style_instruction}")
    lines.append("")
    lines.append(text)

    return [
        {"role": "system", "content": SHORTEN_SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(lines)},
    ]
