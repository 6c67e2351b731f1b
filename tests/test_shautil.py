from limavm.shautil import sha1, sha256


def test_sha256_empty_string():
    assert str(sha256("")) == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_sha1_empty_string():
    assert str(sha1("")) == "da39a3ee5e6b4b0d3255bfef95601890afd80709"


def test_lengths():
    assert len(bytes(sha256("abc"))) == 32
    assert len(bytes(sha1("abc"))) == 20
    assert len(str(sha256("abc"))) == 64


def test_hex_matches_bytes():
    digest = sha256("https://example.com/image.qcow2")
    assert bytes.fromhex(str(digest)) == bytes(digest)


def test_deterministic_and_distinct():
    assert sha256("a") == sha256("a")
    assert str(sha256("a")) != str(sha256("b"))
    assert str(sha1("a")) != str(sha1("b"))