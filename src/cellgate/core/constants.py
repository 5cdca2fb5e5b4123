"""
Gateway constants: media types, query parameters and headers.
"""

# Media types
MIMETYPE_XML = "application/xml"
MIMETYPE_TEXT_XML = "text/xml"
MIMETYPE_JSON = "application/json"
MIMETYPE_PROTOBUF = "application/x-protobuf"
MIMETYPE_PROTOBUF_IETF = "application/protobuf"
MIMETYPE_BINARY = "application/octet-stream"
MIMETYPE_TEXT = "text/plain"

# Query parameters
ROW_KEYS_PARAM = "row"
FILTER_PARAM = "filter"
FILTER_B64_PARAM = "filter.b64"
KEY_ENCODING_PARAM = "e"
VERSIONS_PARAM = "v"

# Headers
KEY_ENCODING_HEADER = "Encoding"
TIMESTAMP_HEADER = "X-Timestamp"
REQUEST_ID_HEADER = "X-Request-Id"

# Value of the key encoding hint selecting base64url row keys
KEY_ENCODING_B64 = "b64"

# Column family / qualifier delimiter inside a column name
COLUMN_DELIMITER = b":"

# CSRF defaults
CSRF_CUSTOM_HEADER_DEFAULT = "X-XSRF-HEADER"
CSRF_METHODS_TO_IGNORE_DEFAULT = "GET,OPTIONS,HEAD,TRACE"
CSRF_BROWSER_USERAGENTS_REGEX_DEFAULT = "^Mozilla.*,^Opera.*"

# Point-read defaults
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds, whole multiget
DEFAULT_MAX_PARALLEL_READS = 16
DEFAULT_MAX_VERSIONS = 1

# Cell timestamps are signed 64-bit
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
