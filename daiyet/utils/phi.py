"""Protected health information scrubbing for session transcripts.

Transcripts pass through ``de_identify`` before they are sent to any
third-party model. Matching is lexical: known Nigerian first names,
states and cities, phone numbers, emails and honorific + name.
"""

import re

PATIENT_NAME = "[PATIENT_NAME]"
LOCATION = "[LOCATION]"
PHONE = "[PHONE]"
EMAIL = "[EMAIL]"

NIGERIAN_FIRST_NAMES = [
    # Yoruba
    "Ade", "Bola", "Funke", "Kemi", "Olumide", "Tunde", "Yemi", "Segun", "Folake", "Bimbo",
    "Adebayo", "Adenike", "Ayodele", "Babatunde", "Folajimi", "Olumuyiwa", "Toluwalase",
    # Igbo
    "Chika", "Chidi", "Ngozi", "Ifeoma", "Obinna", "Chioma", "Emeka", "Adaora", "Kelechi", "Amara",
    "Chinonso", "Chiamaka", "Tochukwu", "Onyinye", "Ndidi", "Chibuzo",
    # Hausa
    "Amina", "Fatima", "Hassan", "Ibrahim", "Maryam", "Musa", "Aisha", "Yusuf", "Zainab", "Halima",
    "Abdullahi", "Hamza", "Sadiq", "Bashir",
    # Common
    "Blessing", "Faith", "Grace", "Hope", "Joy", "Peace", "Patience", "Mercy",
    "David", "Michael", "John", "Peter", "Paul", "James", "Joseph", "Daniel",
]

NIGERIAN_LOCATIONS = [
    # States
    "Abia", "Adamawa", "Akwa Ibom", "Anambra", "Bauchi", "Bayelsa", "Benue", "Borno",
    "Cross River", "Delta", "Ebonyi", "Edo", "Ekiti", "Enugu", "Gombe", "Imo",
    "Jigawa", "Kaduna", "Kano", "Katsina", "Kebbi", "Kogi", "Kwara", "Lagos",
    "Nasarawa", "Niger", "Ogun", "Ondo", "Osun", "Oyo", "Plateau", "Rivers",
    "Sokoto", "Taraba", "Yobe", "Zamfara", "FCT",
    # Cities
    "Abuja", "Ibadan", "Port Harcourt", "Benin City", "Aba", "Maiduguri", "Ilorin",
    "Onitsha", "Warri", "Abeokuta", "Calabar", "Uyo", "Akure", "Owerri", "Oshogbo",
    "Jos", "Yola",
]

# +2348012345678, 2348012345678, 08012345678
PHONE_PATTERNS = [
    re.compile(r"\+?234[789]\d{9}"),
    re.compile(r"0[789]\d{9}"),
]

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

HONORIFIC_PATTERN = re.compile(r"\b((?:Mr|Mrs|Miss|Ms|Dr|Prof)\.?\s+)[A-Z][a-z]+\b")


def _word_pattern(words: list[str]) -> re.Pattern[str]:
    # Longest first so "Benin City" wins over a shorter overlapping entry
    ordered = sorted({w.lower() for w in words}, key=len, reverse=True)
    alternatives = "|".join(re.escape(w) for w in ordered)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


LOCATION_PATTERN = _word_pattern(NIGERIAN_LOCATIONS)
NAME_PATTERN = _word_pattern(NIGERIAN_FIRST_NAMES)


def de_identify(text: str) -> str:
    """Replace PHI in a transcript with placeholders.

    Args:
        text: Raw transcript

    Returns:
        str: Transcript with phones, emails, locations and names masked
    """
    scrubbed = text
    for pattern in PHONE_PATTERNS:
        scrubbed = pattern.sub(PHONE, scrubbed)
    scrubbed = EMAIL_PATTERN.sub(EMAIL, scrubbed)
    scrubbed = LOCATION_PATTERN.sub(LOCATION, scrubbed)
    scrubbed = NAME_PATTERN.sub(PATIENT_NAME, scrubbed)
    scrubbed = HONORIFIC_PATTERN.sub(lambda m: m.group(1) + PATIENT_NAME, scrubbed)
    return scrubbed


def re_identify(
    text: str,
    patient_name: str | None = None,
    location: str | None = None,
    phone: str | None = None,
    email: str | None = None,
) -> str:
    """Put known values back in place of placeholders.

    Placeholders without a supplied value are left untouched.
    """
    restored = text
    for placeholder, value in (
        (PATIENT_NAME, patient_name),
        (LOCATION, location),
        (PHONE, phone),
        (EMAIL, email),
    ):
        if value:
            restored = restored.replace(placeholder, value)
    return restored
