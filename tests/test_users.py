import pytest

from trustify.auth import create_access_token, verify_access_token
from trustify.users import create_user, verify_user_credentials


def test_password_is_hashed(store):
    user = create_user(store, "Shopper@Example.com", "hunter22", "customer")
    assert user["email"] == "shopper@example.com"
    stored = store.find_user("shopper@example.com")
    assert stored["password_hash"] != "hunter22"
    assert stored["password_hash"].startswith("$2")


def test_verify_credentials(store):
    create_user(store, "brand@example.com", "hunter22", "brand")
    assert verify_user_credentials(store, "BRAND@example.com", "hunter22")["role"] == "brand"
    assert verify_user_credentials(store, "brand@example.com", "wrong") is None
    assert verify_user_credentials(store, "ghost@example.com", "hunter22") is None


def test_duplicate_and_bad_role(store):
    create_user(store, "a@example.com", "pw123456", "customer")
    with pytest.raises(ValueError, match="user_exists"):
        create_user(store, "a@example.com", "pw123456", "customer")
    with pytest.raises(ValueError, match="invalid_role"):
        create_user(store, "b@example.com", "pw123456", "wizard")


def test_token_roundtrip():
    token = create_access_token({"id": "u1", "email": "a@example.com", "role": "admin"})
    claims = verify_access_token(token)
    assert claims["uid"] == "u1"
    assert claims["role"] == "admin"
    assert verify_access_token(token + "x") is None
