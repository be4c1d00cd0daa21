import re




EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_RE = re.compile(r"^(\+62|62|0)[0-9]{9,12}$")
UII_EMAIL_DOMAIN = "uii.ac.id"


def _strip_phone(phone: str) -> str:
    for separator in (" ", "-", "(", ")"):
        phone = phone.replace(separator, "")
    return phone


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def is_valid_phone(phone: str) -> bool:
    """Indonesian numbers: 08xx, 628xx or +628xx"""
    return bool(PHONE_RE.match(_strip_phone(phone)))


def normalize_phone(phone: str) -> str:
    """Bring a phone number to the +62 form"""
    cleaned = _strip_phone(phone)
    if cleaned.startswith("0"):
        return "+62" + cleaned[1:]
    if cleaned.startswith("62"):
        return "+" + cleaned
    return cleaned


def is_uii_email(email: str) -> bool:
    """uii.ac.id itself or any of its subdomains, e.g. students.uii.ac.id"""
    domain = email.lower().rpartition("@")[2]
    return domain == UII_EMAIL_DOMAIN or domain.endswith("." + UII_EMAIL_DOMAIN)
