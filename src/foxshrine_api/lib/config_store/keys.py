"""Configuration key normalization.

Canonical keys are dot paths (``stream.isLive``). Older rows were stored
under flat camel-case keys; those are mapped through a fixed alias table.
"""

from types import MappingProxyType

KEY_SEPARATOR = "."

LEGACY_KEY_MAP: MappingProxyType[str, str] = MappingProxyType(
    {
        "siteTitle": "siteTitle",
        "siteDescription": "siteDescription",
        "siteLogo": "siteLogo",
        "siteUrl": "siteUrl",
        "characterName": "character.name",
        "characterDescription": "character.description",
        "characterImage": "character.image",
        "characterGreeting": "character.greeting",
        "twitchUrl": "social.twitchUrl",
        "youtubeUrl": "social.youtubeUrl",
        "twitterUrl": "social.twitterUrl",
        "discordUrl": "social.discordUrl",
        "instagramUrl": "social.instagramUrl",
        "streamTitle": "stream.title",
        "streamCategory": "stream.category",
        "isLive": "stream.isLive",
        "nextStreamDate": "stream.nextStreamDate",
        "streamNotification": "stream.notification",
        "latestStreamEmbedUrl": "stream.latestStreamEmbedUrl",
        "primaryColor": "theme.primaryColor",
        "secondaryColor": "theme.secondaryColor",
        "accentColor": "theme.accentColor",
        "backgroundColor": "theme.backgroundColor",
        "fontFamily": "theme.fontFamily",
        "showMerch": "features.showMerch",
        "showDonations": "features.showDonations",
        "showSchedule": "features.showSchedule",
        "showLatestVideos": "features.showLatestVideos",
        "enableNotifications": "features.enableNotifications",
        "heroTitle": "content.heroTitle",
        "heroSubtitle": "content.heroSubtitle",
        "aboutText": "content.aboutText",
        "latestVideos": "content.latestVideos",
        "schedule": "content.schedule",
        "merch": "content.merch",
        "businessEmail": "contact.businessEmail",
        "fanEmail": "contact.fanEmail",
        "supportEmail": "contact.supportEmail",
        "googleAnalyticsId": "analytics.googleAnalyticsId",
        "enableAnalytics": "analytics.enableAnalytics",
        "maintenanceMode": "system.maintenanceMode",
        "maintenanceMessage": "system.maintenanceMessage",
        "emergencyNotice": "system.emergencyNotice",
    }
)


def normalize_key(key: str) -> str:
    """Resolve a configuration key to its canonical dot path.

    Keys that already contain a dot (and empty keys) are returned as-is.
    Flat keys go through ``LEGACY_KEY_MAP``; unknown flat keys pass through.

    Args:
        key: The stored or supplied key.

    Returns:
        The canonical key.
    """
    if not key or KEY_SEPARATOR in key:
        return key
    return LEGACY_KEY_MAP.get(key, key)


def split_key(key: str) -> list[str]:
    """Split a canonical key into its path segments."""
    return key.split(KEY_SEPARATOR)
