"""Common literal values used across section_composer.

These constants keep endpoint paths, fallback dimensions and defaults
centralized so the strategy selector, HTTP clients, and tests import the same
values without drifting. Intended for internal use within the package.

Examples
--------
>>> from section_composer import _constants
>>> _constants.DEFAULT_PADDING_PCT
10.0
>>> _constants.COMPOSED_ENDPOINT.startswith("/api/")
True
"""

DEFAULT_PADDING_PCT = 10.0
DEFAULT_MASTER_WIDTH = 1440
DEFAULT_MASTER_HEIGHT = 900
DEFAULT_IMAGE_URL_PREFIX = "/api/images/"

COMPOSED_ENDPOINT = "/api/compose/generate-section-composed"
GENERIC_ENDPOINT = "/api/export/generate-section"
SAVE_PROJECT_ENDPOINT = "/api/compose/save-project"

DEFAULT_MODEL = "deepseek"
DEFAULT_IMAGE_MODE = "unsplash"
CONTEXT_SEPARATOR = "\n"
