"""Browser clients for talking to the Lumosity web app."""

from .browser import BrowserPool, BrowserSession, ResponseRecorder

__all__ = ["BrowserPool", "BrowserSession", "ResponseRecorder"]
