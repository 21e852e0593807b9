from __future__ import annotations

ENGLISH_SYSTEM_PROMPT = (
    "You are a helpful assistant answering interview questions. "
    "Provide clear, concise, and accurate answers."
)

POLISH_SYSTEM_PROMPT = (
    "Jesteś pomocnym asystentem odpowiadającym na pytania rekrutacyjne. "
    "Udzielaj jasnych, zwięzłych i dokładnych odpowiedzi po polsku."
)


def system_prompt_for(language: str | None) -> str:
    """
    Single system prompt selector shared by all providers.
    Polish sessions get a Polish prompt; everything else gets the English one.
    """
    if language == "pl-PL":
        return POLISH_SYSTEM_PROMPT
    return ENGLISH_SYSTEM_PROMPT


def inline_prompt(system_prompt: str, question: str) -> str:
    """For providers without a separate system field."""
    return f"{system_prompt}\n\nQuestion: {question}"
