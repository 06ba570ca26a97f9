"""Built-in site configuration, used as the client fallback and as seed data."""

from types import MappingProxyType
from typing import Any

DEFAULT_SITE_CONFIG: MappingProxyType[str, Any] = MappingProxyType(
    {
        "siteTitle": "Fox Shrine VTuber",
        "siteDescription": "Join the Fox Shrine for games, laughs, and shrine fox adventures!",
        "siteLogo": "/images/fox-shrine-logo.png",
        "siteUrl": "https://foxshrinevtuber.com",
        "character": {
            "name": "Fox Shrine Guardian",
            "description": "A mischievous fox spirit who guards an ancient shrine and streams for fun!",
            "image": "/images/fox-character.png",
            "greeting": "Welcome to my shrine, fellow foxes! 🦊",
        },
        "social": {
            "twitchUrl": "https://twitch.tv/foxshrinevtuber",
            "youtubeUrl": "https://youtube.com/@foxshrinevtuber",
            "twitterUrl": "https://twitter.com/foxshrinevtuber",
            "discordUrl": "https://discord.gg/foxshrine",
            "instagramUrl": "https://instagram.com/foxshrinevtuber",
        },
        "stream": {
            "title": "Fox Friday Funtime!",
            "category": "Just Chatting",
            "isLive": False,
            "nextStreamDate": "2025-09-15T21:00:00Z",
            "notification": "Join me tonight for some cozy games! 🎮",
        },
        "theme": {
            "primaryColor": "#C41E3A",
            "secondaryColor": "#FF9500",
            "accentColor": "#5FB4A2",
            "backgroundColor": "#F5F1E8",
            "fontFamily": "Cinzel, serif",
        },
        "features": {
            "showMerch": True,
            "showDonations": True,
            "showSchedule": True,
            "showLatestVideos": True,
            "enableNotifications": True,
        },
        "content": {
            "heroTitle": "Welcome to the Fox Shrine",
            "heroSubtitle": "Join me on a magical journey filled with laughter, games, and shrine fox mischief!",
            "aboutText": (
                "Legend has it that I was once a regular fox who stumbled upon an abandoned shrine"
                " deep in the mystical forest."
            ),
        },
        "contact": {
            "businessEmail": "business@foxshrinevtuber.com",
            "fanEmail": "fanart@foxshrinevtuber.com",
            "supportEmail": "support@foxshrinevtuber.com",
        },
        "system": {
            "maintenanceMode": False,
            "maintenanceMessage": "The shrine is currently under magical maintenance! Please check back soon! 🦊✨",
            "emergencyNotice": "",
        },
    }
)
