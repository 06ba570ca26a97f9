"""Fox Shrine API: site configuration, accounts and permissions for the Fox Shrine VTuber site."""

__version__ = "1.0.0"
