"""Styling for questionary prompts.

Only the kubeconfig context picker prompts interactively; it uses the
palette below so it matches the rich console theme.
"""

from questionary import Style

PROMPT_STYLE = Style(
    [
        ("qmark", "fg:#5fafd7 bold"),
        ("question", "bold"),
        ("answer", "fg:#5fd7af bold"),
        ("pointer", "fg:#5fd7af bold"),
        ("highlighted", "fg:#1c1c1c bg:#5fd7af bold"),
        ("instruction", "fg:#6c6c6c italic"),
    ]
)

POINTER = "❯ "
QMARK = "? "
