"""Military Tees UK storefront: cart store, catalog checks and checkout."""
