from markupsafe import Markup, escape


def sanitize(text: str) -> Markup:
    """Escape untrusted text so it renders as literal characters, never as markup."""
    return escape(text)
