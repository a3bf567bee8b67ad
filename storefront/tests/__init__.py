import os

# Keep the suite on the in-memory database, storage and key/value store.
os.environ.setdefault("STOREFRONT_USE_IN_MEMORY_BACKENDS", "1")
