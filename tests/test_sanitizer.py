from storefront.utils import clean_text


def test_clean_removes_script_tags():
    s = "<script>alert(1)</script>Bob"
    out = clean_text(s)
    assert "<script>" not in out.lower()
    assert "bob" in out.lower()


def test_clean_keeps_plain_text():
    assert clean_text("  Solid kettle; boils fast  ") == "Solid kettle; boils fast"


def test_clean_strips_nul_and_passes_none():
    assert clean_text("a\x00b") == "ab"
    assert clean_text(None) is None
