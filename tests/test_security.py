from app.utils.security import hash_password, verify_password


def test_hash_format_and_verify():
    stored = hash_password("password")
    digest_hex, salt_hex = stored.split(".")
    assert len(digest_hex) == 128
    assert len(salt_hex) == 32
    assert verify_password("password", stored)
    assert not verify_password("Password", stored)


def test_salts_differ():
    assert hash_password("same") != hash_password("same")


def test_malformed_stored_value():
    assert not verify_password("password", "not-a-hash")
    assert not verify_password("password", "zz.zz")
