"""Storage keys, content types and configuration names."""

PLUGIN_CONFIG_KEY = "az-storage"

CONNECTION_STRING_ENV = "AZ_STORAGE_CONNECTION_STRING"
APP_CONFIG_CONNECTION_STRING_ENV = "AZ_APP_CONFIG_CONNECTION_STRING"

DEFAULT_PACKAGES_DIR = "packages"
DEFAULT_DB_FILE_NAME = ".verdaccio-db.json"
DEFAULT_APP_CONFIG_KEY_NAME = "verdaccio-db"

PACKAGE_FILE_NAME = "package.json"

JSON_CONTENT_TYPE = "application/json"
TARBALL_CONTENT_TYPE = "application/x-compressed"
