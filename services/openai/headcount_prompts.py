"""Prompt text for the headcount vision model."""


def build_system_prompt() -> str:
    """Return the system prompt for counting people in a classroom frame."""
    return (
        "You count people in classroom photographs. Count every distinct person whose face, head or "
        "upper body is visible, including people partly hidden behind others. Do not count people "
        "shown on screens, posters or reflections."
    )


def build_user_prompt(structured: bool) -> str:
    """Return the user instruction for the requested reply shape."""
    if structured:
        return "Count the number of people in this image and report it with the provided tool."
    return "Count the number of people in this image. Respond with only a single integer number."
