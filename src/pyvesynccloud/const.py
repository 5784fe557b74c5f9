"""Constants for pyvesynccloud library."""

from __future__ import annotations


# Package version written into persisted sessions
LIBRARY_VERSION = "0.1.0"

# API Configuration
US_BASE_URL = "https://smartapi.vesync.com"
EU_BASE_URL = "https://smartapi.vesync.eu"
DEFAULT_BASE_URL = US_BASE_URL
DEFAULT_TIMEOUT = 5  # seconds
DEFAULT_UPDATE_INTERVAL = 30  # seconds between full device refreshes

# Login retry defaults
DEFAULT_LOGIN_RETRY_ATTEMPTS = 3
DEFAULT_LOGIN_BACKOFF = 1.0  # seconds, doubled every attempt

# App identity sent with every request
APP_VERSION = "5.7.16"
APP_ID = "THqcCqBj"
CLIENT_VERSION = f"VeSync {APP_VERSION}"
CLIENT_TYPE = "vesyncApp"
PHONE_BRAND = "SM N9005"
PHONE_OS = "Android"
USER_TYPE = "1"
MOBILE_ID = "1234567890123456"
BYPASS_HEADER_UA = "okhttp/3.12.1"
ACCEPT_LANGUAGE = "en"
DEFAULT_TZ = "America/New_York"
DEFAULT_REGION = "US"

# Endpoints
ENDPOINT_AUTH_STEP1 = "/globalPlatform/api/accountAuth/v1/authByPWDOrOTM"
ENDPOINT_AUTH_STEP2 = "/user/api/accountManage/v1/loginByAuthorizeCode4Vesync"
ENDPOINT_LEGACY_LOGIN = "/cloud/v1/user/login"
ENDPOINT_DEVICE_LIST = "/cloud/v2/deviceManaged/devices"
ENDPOINT_DEVICE_DETAIL = "/cloud/v1/deviceManaged/deviceDetail"

# Auth protocol method names
METHOD_AUTH_STEP1 = "authByPWDOrOTM"
METHOD_AUTH_STEP2 = "loginByAuthorizeCode4Vesync"
REGION_CHANGE_LAST_REGION = "lastRegion"

# Error codes that indicate bad credentials (retrying cannot help)
CREDENTIAL_ERROR_CODES = frozenset(
    {
        -11201129,  # account or password incorrect
        -11202129,  # the account does not exist
        -11000129,  # illegal argument (empty credentials)
    }
)

# Error codes that require switching regional endpoint
CROSS_REGION_ERROR_CODES = frozenset(
    {
        -11260022,  # cross region error
        -11261022,  # access region conflict error
    }
)

TOKEN_ERROR_CODES = frozenset({-11001000})
APP_VERSION_ERROR_CODES = frozenset({-11012022})

TOKEN_ERROR_MESSAGES = ("token expired", "token is expired", "invalid token", "token invalid")

# JWT Token Constants
JWT_PARTS_COUNT = 3
BASE64_PADDING_MODULO = 4
MILLISECOND_TIMESTAMP_THRESHOLD = 100_000_000_000

# Device list paging
DEVICE_LIST_PAGE_SIZE = "100"

# Device type prefix -> category
DEVICE_CATEGORY_FANS = "fans"
DEVICE_CATEGORY_OUTLETS = "outlets"
DEVICE_CATEGORY_SWITCHES = "switches"
DEVICE_CATEGORY_BULBS = "bulbs"

# Ordered: more specific prefixes first (ESWL/ESWD before ESW)
DEVICE_CATEGORY_PREFIXES: tuple[tuple[str, str], ...] = (
    ("ESWL", DEVICE_CATEGORY_SWITCHES),
    ("ESWD", DEVICE_CATEGORY_SWITCHES),
    ("Core", DEVICE_CATEGORY_FANS),
    ("LAP", DEVICE_CATEGORY_FANS),
    ("LTF", DEVICE_CATEGORY_FANS),
    ("Classic", DEVICE_CATEGORY_FANS),
    ("Dual", DEVICE_CATEGORY_FANS),
    ("LUH", DEVICE_CATEGORY_FANS),
    ("LEH", DEVICE_CATEGORY_FANS),
    ("LV-PUR", DEVICE_CATEGORY_FANS),
    ("LV-RH", DEVICE_CATEGORY_FANS),
    ("wifi-switch", DEVICE_CATEGORY_OUTLETS),
    ("ESW03", DEVICE_CATEGORY_OUTLETS),
    ("ESW01", DEVICE_CATEGORY_OUTLETS),
    ("ESW10", DEVICE_CATEGORY_OUTLETS),
    ("ESW15", DEVICE_CATEGORY_OUTLETS),
    ("ESO", DEVICE_CATEGORY_OUTLETS),
    ("ESL", DEVICE_CATEGORY_BULBS),
    ("XYD", DEVICE_CATEGORY_BULBS),
)

# Keys masked in debug logs when redaction is enabled
REDACTED_KEYS = frozenset(
    {
        "token",
        "tk",
        "accountID",
        "accountId",
        "email",
        "password",
        "authorizeCode",
        "bizToken",
    }
)
REDACTED_VALUE = "##_REDACTED_##"
