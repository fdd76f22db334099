ROLE_USER = "USER"
ROLE_VENDOR = "VENDOR"
ROLE_ADMIN = "ADMIN"

ROLES = {
    ROLE_USER: "Buyer",
    ROLE_VENDOR: "Vendor",
    ROLE_ADMIN: "Administrator",
}

USER_STATUSES = ("ACTIVE", "INACTIVE", "SUSPENDED")

# общие для отзывов, продавцов и модерации
STATUS_PENDING = "PENDING"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
REVIEW_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)

LISTING_ACTIVE = "ACTIVE"
LISTING_STATUSES = ("DRAFT", "PENDING", "ACTIVE", "REJECTED", "INACTIVE")
# статусы, которые продавец может поставить сам
VENDOR_LISTING_STATUSES = ("DRAFT", "PENDING", "INACTIVE")
LISTING_TYPES = ("DIGITAL", "PRODUCT", "SERVICE")

ORDER_SHIPPED = "SHIPPED"
ORDER_DELIVERED = "DELIVERED"
ORDER_COMPLETED = "COMPLETED"
ORDER_STATUSES = (
    "CREATED",
    "PAID",
    "PROCESSING",
    ORDER_SHIPPED,
    ORDER_DELIVERED,
    ORDER_COMPLETED,
    "CANCELLED",
    "REFUNDED",
)
# покупатель может только подтвердить получение
ORDER_CONFIRM_STATUSES = (ORDER_DELIVERED, ORDER_COMPLETED)

PAYMENT_METHODS = ("ALIPAY", "WECHAT", "CARD")

# ключи "local storage" посетителя
CART_STORAGE_KEY = "cart-storage"
CART_STORAGE_VERSION = 1
LANGUAGE_STORAGE_KEY = "cimplico-language-storage"
I18N_CACHE_KEY = "i18nextLng"
TOASTS_STORAGE_KEY = "toasts"
API_COOKIES_KEY = "api-cookies"

SUPPORTED_LANGUAGES = ("zh", "en")

HOME_PATH = "/"
LOGIN_PATH = "/auth"
PROFILE_PATH = "/profile"
ADMIN_PREFIX = "/admin"
ADMIN_HOME_PATH = "/admin"

FILTER_ALL = "all"

SORT_NEWEST = "newest"
SORT_PRICE_LOW_HIGH = "price-low-high"
SORT_PRICE_HIGH_LOW = "price-high-low"
SORT_RATING = "rating"
SORT_KEYS = (SORT_NEWEST, SORT_PRICE_LOW_HIGH, SORT_PRICE_HIGH_LOW, SORT_RATING)

PRICE_SLIDER_MAX = 1000

POPULAR_TAGS = (
    "Tax",
    "Audit",
    "Finance",
    "Statement",
    "Individual income tax",
    "Corporate income tax",
    "Analyse",
    "Risk assessment",
)

STATISTICS_KINDS = ("users", "vendors", "orders")
