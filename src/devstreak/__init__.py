"""devstreak - daily developer-habit tracker with GitHub sync and streak stats."""

__version__ = "0.1.0"
