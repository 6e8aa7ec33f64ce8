import pytest

from rbldkit.dnsname import (
    DomainNameError,
    dn_equal,
    dn_labels,
    dn_length,
    dn_lower,
    dn_reverse,
    dn_to_text,
    find_name,
    lowercase,
    text_to_dn,
)


def test_text_to_dn_wire_format():
    assert text_to_dn("www.example.com") == b"\x03www\x07example\x03com\x00"


def test_root_name():
    assert text_to_dn("") == b"\x00"
    assert text_to_dn(".") == b"\x00"
    assert dn_to_text(b"\x00") == "."


@pytest.mark.parametrize("name", ["www.example.com", "a.b.c", "x", "mail-1.host.org"])
def test_round_trip(name):
    dn = text_to_dn(name)
    assert dn_to_text(dn) == name
    assert dn_length(dn) == len(dn)
    assert dn_labels(dn) == len(name.split("."))


def test_trailing_and_empty_labels_ignored():
    assert text_to_dn("a..b.") == text_to_dn("a.b")
    assert text_to_dn(".a.b") == text_to_dn("a.b")


def test_reverse():
    dn = text_to_dn("a.bb.ccc")
    assert dn_reverse(dn) == text_to_dn("ccc.bb.a")
    assert dn_reverse(dn_reverse(dn)) == dn


def test_lower_and_equal():
    upper = text_to_dn("WwW.ExAmple.COM")
    assert dn_lower(upper) == text_to_dn("www.example.com")
    assert dn_equal(upper, text_to_dn("www.example.com"))
    assert not dn_equal(upper, text_to_dn("www.example.org"))
    assert not dn_equal(text_to_dn("ab.c"), text_to_dn("a.bc"))


def test_lowercase_only_ascii_letters():
    assert lowercase(b"AZ") == b"az"
    assert lowercase(b"@[`{\xc0\xde") == b"@[`{\xc0\xde"


def test_decimal_escape():
    assert text_to_dn("\\065bc") == text_to_dn("Abc")
    assert text_to_dn("a\\.b") != text_to_dn("a.b")
    assert dn_labels(text_to_dn("a\\.b")) == 1


def test_escape_out_of_range():
    with pytest.raises(DomainNameError):
        text_to_dn("\\256")


def test_dn_to_text_escapes_space():
    assert dn_to_text(b"\x01 \x00") == "\\032"


@pytest.mark.parametrize(
    "dn", [b"\x03a@\xff\x00", b"\x02.;\x01$\x00", b"\x04\x00\x7f\\\"\x00"]
)
def test_escape_round_trip(dn):
    assert text_to_dn(dn_to_text(dn)) == dn


def test_dn_to_text_size_limit():
    dn = text_to_dn("www.example.com")
    text = dn_to_text(dn)
    assert dn_to_text(dn, len(text) + 1) == text
    with pytest.raises(DomainNameError):
        dn_to_text(dn, len(text))


def test_text_to_dn_size_limit():
    dn = text_to_dn("ab.cd")
    assert text_to_dn("ab.cd", len(dn)) == dn
    with pytest.raises(DomainNameError):
        text_to_dn("ab.cd", len(dn) - 1)


def test_label_length_limit():
    dn = text_to_dn("a" * 63)
    assert dn_length(dn) == 63 + 2
    with pytest.raises(DomainNameError):
        text_to_dn("a" * 64)
    with pytest.raises(DomainNameError):
        text_to_dn("a" * 64 + ".b")


def test_name_length_limit():
    with pytest.raises(DomainNameError):
        text_to_dn(".".join(["abcdefghi"] * 30))


def test_truncated_name():
    with pytest.raises(DomainNameError):
        dn_length(b"\x05ab")
    with pytest.raises(DomainNameError):
        dn_labels(b"\x01a")


def test_find_name():
    table = {"A": 1, "MX": 15, "TXT": 16}
    assert find_name(table, "mx") == 15
    assert find_name(table, "Txt") == 16
    assert find_name(table, "aaaa") is None


def test_find_name_too_long():
    long_name = "X" * 59
    assert find_name({long_name: 1}, long_name) is None
    short_name = "X" * 58
    assert find_name({short_name: 2}, short_name.lower()) == 2