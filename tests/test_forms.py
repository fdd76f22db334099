from market.web.forms import (
    CategoryForm,
    CheckoutForm,
    CommentForm,
    ListingForm,
    LoginForm,
    PasswordForm,
    ProfileForm,
    RegisterForm,
    UserUpdateForm,
    validate_form,
)

REGISTRATION = {
    "email": "new@example.com",
    "password": "secret1",
    "confirmPassword": "secret1",
    "firstName": "Li",
    "lastName": "Wei",
}


def test_valid_login(i18n_en):
    form, errors = validate_form(LoginForm, {"email": " a@b.cn ", "password": "123456"}, i18n_en)
    assert errors == {}
    assert form.email == "a@b.cn"


def test_login_errors_are_translated(i18n_en):
    form, errors = validate_form(LoginForm, {"email": "nope", "password": "123"}, i18n_en)
    assert form is None
    assert errors == {"email": "Invalid format", "password": "Must be at least 6 characters"}


def test_register_dumps_with_api_field_names(i18n_en):
    form, errors = validate_form(RegisterForm, REGISTRATION, i18n_en)
    assert errors == {}
    dumped = form.model_dump(by_alias=True)
    assert dumped["firstName"] == "Li"
    assert dumped["confirmPassword"] == "secret1"


def test_password_mismatch_is_reported_on_confirmation(i18n_en):
    data = dict(REGISTRATION, confirmPassword="secret2")
    _, errors = validate_form(RegisterForm, data, i18n_en)
    assert errors == {"confirmPassword": "Passwords do not match"}


def test_comment_rating_range(i18n_en):
    _, errors = validate_form(CommentForm, {"content": "Great", "rating": 6}, i18n_en)
    assert errors == {"rating": "Value is out of range"}
    form, errors = validate_form(CommentForm, {"content": "Great", "rating": "4"}, i18n_en)
    assert form.rating == 4


def test_checkout_payment_method(i18n_en):
    _, errors = validate_form(CheckoutForm, {"paymentMethod": "CASH"}, i18n_en)
    assert errors == {"paymentMethod": "Invalid choice"}


def test_category_slug(i18n_en):
    _, errors = validate_form(CategoryForm, {"name": "Tax", "slug": "Tax Papers"}, i18n_en)
    assert errors == {"slug": "Invalid format"}


def test_user_update_ignores_empty_fields(i18n_en):
    form, errors = validate_form(UserUpdateForm, {"status": "", "role": "VENDOR"}, i18n_en)
    assert errors == {}
    assert form.model_dump(exclude_none=True) == {"role": "VENDOR"}


def test_listing_tags_and_api_names(i18n_en):
    data = {
        "title": "VAT return pack",
        "description": "Monthly VAT return workpapers with notes",
        "price": "0",
        "category": "tax",
        "tags": " Tax, VAT ,,",
        "downloadUrl": "",
    }
    form, errors = validate_form(ListingForm, data, i18n_en)
    assert errors == {}
    dumped = form.model_dump(by_alias=True)
    assert dumped["tags"] == ["Tax", "VAT"]
    assert dumped["price"] == 0.0
    assert dumped["downloadUrl"] is None
    assert dumped["status"] == "PENDING"


def test_listing_rejects_moderation_statuses(i18n_en):
    data = {
        "title": "VAT return pack",
        "description": "Monthly VAT return workpapers with notes",
        "price": "abc",
        "category": "tax",
        "type": "EBOOK",
        "status": "ACTIVE",
    }
    _, errors = validate_form(ListingForm, data, i18n_en)
    assert errors == {"price": "Value is out of range", "type": "Invalid choice", "status": "Invalid choice"}


def test_profile_language_must_be_supported(i18n_en):
    data = {"firstName": "Li", "lastName": "Wei", "email": "li@example.com", "phone": "", "language": "fr"}
    _, errors = validate_form(ProfileForm, data, i18n_en)
    assert errors == {"language": "Invalid choice"}

    form, errors = validate_form(ProfileForm, dict(data, language=""), i18n_en)
    assert form.model_dump(by_alias=True, exclude_none=True) == {
        "firstName": "Li",
        "lastName": "Wei",
        "email": "li@example.com",
    }


def test_new_password_rules(i18n_en):
    _, errors = validate_form(
        PasswordForm, {"currentPassword": "old", "newPassword": "123", "confirmPassword": "123"}, i18n_en
    )
    assert errors == {"newPassword": "Must be at least 6 characters"}

    _, errors = validate_form(
        PasswordForm, {"currentPassword": "old", "newPassword": "secret2", "confirmPassword": "secret3"}, i18n_en
    )
    assert errors == {"confirmPassword": "Passwords do not match"}
