# Settings are read at import time; give them test values before any storefront import.
import os

os.environ.setdefault("FIREBASE_PROJECT_ID", "storefront-test")
os.environ.setdefault("FIREBASE_WEB_API_KEY", "AIzaTestKey000000000000000000000000000")
os.environ.setdefault("COOKIE_SECURE", "false")
os.environ.setdefault("CART_SWEEP_MINUTES", "0")
os.environ.setdefault("FIREBASE_COLLECTION_PREFIX", "test_")
