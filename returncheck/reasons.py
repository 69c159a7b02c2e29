# returncheck/reasons.py
# Exact strings submitted by the bilingual report form.
REASONS_EN = (
    "Product dissatisfaction",
    "Refused to open package",
    "Package damaged during delivery",
    "Customer changed mind",
    "Other",
)

REASONS_AR = (
    "عدم الرضا عن المنتج",
    "رفض فتح الطرد",
    "تلف الطرد أثناء التوصيل",
    "تغيير رأي العميل",
    "أخرى",
)

VALID_REASONS = frozenset(REASONS_EN + REASONS_AR)
OTHER_REASONS = frozenset({"Other", "أخرى"})

CUSTOM_REASON_MAX_LENGTH = 200

def is_valid_reason(reason: str) -> bool:
    return reason in VALID_REASONS

def clean_custom_reason(reason: str, custom_reason: str | None) -> str | None:
    """Free text is only kept for the "Other" category; trimmed and bounded."""
    if reason not in OTHER_REASONS or not custom_reason:
        return None
    text = custom_reason.strip()
    return text[:CUSTOM_REASON_MAX_LENGTH] or None
