"""Static notification templates keyed by (type, locale)."""
from typing import Dict, Iterable, Tuple

from api.models.notification import NotificationTypeEnum as NType


TEMPLATES: Dict[Tuple[NType, str], Tuple[str, str]] = {
    (NType.ARTICLE_APPROVED, "en"): (
        "Article Approved",
        'Your article "{title}" has been approved and published.',
    ),
    (NType.ARTICLE_APPROVED, "np"): (
        "लेख स्वीकृत",
        'तपाईंको लेख "{title}" स्वीकृत र प्रकाशित भएको छ।',
    ),
    (NType.ARTICLE_REJECTED, "en"): (
        "Article Rejected",
        'Your article "{title}" was rejected.',
    ),
    (NType.ARTICLE_REJECTED, "np"): (
        "लेख अस्वीकृत",
        'तपाईंको लेख "{title}" अस्वीकृत भयो।',
    ),
    (NType.ARTICLE_FLAGGED, "en"): (
        "Article Flagged for Revision",
        'Your article "{title}" has been flagged for revision.',
    ),
    (NType.ARTICLE_FLAGGED, "np"): (
        "लेख संशोधनको लागि चिन्हित",
        'तपाईंको लेख "{title}" संशोधनको लागि चिन्हित गरिएको छ।',
    ),
    (NType.ARTICLE_PUBLISHED, "en"): (
        "Scheduled Article Published",
        'Your scheduled article "{title}" has been successfully published.',
    ),
    (NType.ARTICLE_PUBLISHED, "np"): (
        "अनुसूचित लेख प्रकाशित",
        'तपाईंको अनुसूचित लेख "{title}" सफलतापूर्वक प्रकाशित भएको छ।',
    ),
    (NType.NEW_ARTICLE, "en"): (
        "New article from {author}",
        '{author} published a new article: "{title}"',
    ),
    (NType.NEW_ARTICLE, "np"): (
        "{author} बाट नयाँ लेख",
        '{author} ले नयाँ लेख प्रकाशित गर्नुभयो: "{title}"',
    ),
    (NType.NEW_COMMENT, "en"): (
        "New Comment",
        '{actor} commented on your article "{title}"',
    ),
    (NType.NEW_COMMENT, "np"): (
        "नयाँ टिप्पणी",
        '{actor} ले तपाईंको लेख "{title}" मा टिप्पणी गर्नुभयो',
    ),
    (NType.NEW_LIKE, "en"): (
        "Article Liked",
        '{actor} liked your article "{title}"',
    ),
    (NType.NEW_LIKE, "np"): (
        "लेख मनपर्यो",
        '{actor} ले तपाईंको लेख "{title}" लाई मनपर्यो',
    ),
    (NType.NEW_SUBSCRIBER, "en"): (
        "New Subscriber",
        "{actor} subscribed to your content",
    ),
    (NType.NEW_SUBSCRIBER, "np"): (
        "नयाँ सदस्य",
        "{actor} ले तपाईंको सामग्री सदस्यता लिनुभयो",
    ),
}

# Appended to the message when a moderator supplied a reason.
REASON_SUFFIX: Dict[str, str] = {
    "en": " Reason: {reason}",
    "np": " कारण: {reason}",
}

FALLBACK_LOCALE = "en"


def render(notification_type: NType, locale: str, reason: str = "", **params) -> Dict[str, str]:
    """Render one template; unknown locales fall back to English."""
    key = (NType(notification_type), locale)
    if key not in TEMPLATES:
        key = (NType(notification_type), FALLBACK_LOCALE)
        locale = FALLBACK_LOCALE
    title, message = TEMPLATES[key]

    params.setdefault("title", "")
    params.setdefault("author", "")
    params.setdefault("actor", "")
    rendered_message = message.format(**params)
    if reason:
        rendered_message += REASON_SUFFIX.get(locale, REASON_SUFFIX[FALLBACK_LOCALE]).format(reason=reason)

    return {"title": title.format(**params), "message": rendered_message}


def render_all(
    notification_type: NType,
    locales: Iterable[str],
    reason: str = "",
    **params
) -> Dict[str, Dict[str, str]]:
    """Render the template for every locale, keyed by locale."""
    return {locale: render(notification_type, locale, reason=reason, **params) for locale in locales}
