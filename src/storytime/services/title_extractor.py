"""Title derivation from generated story text."""

FALLBACK_TITLE = "New Story"

# Removed in order; "![]" must go before the bare parentheses.
COSMETIC_TOKENS = ("Title:", '"', "#", "*", "![]", "(", ")")


def extract_title(story_text: str) -> str:
    """Derive a title from the first line of raw story text.

    Must be given the text returned by the provider, before any image
    markup is prepended; otherwise the image URL ends up in the title.
    """
    first_line = story_text.split("\n", 1)[0]
    for token in COSMETIC_TOKENS:
        first_line = first_line.replace(token, "")
    title = first_line.strip()
    return title or FALLBACK_TITLE
