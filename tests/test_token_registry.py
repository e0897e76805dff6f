from studio.design.token_registry import (
    EDITABLE_TOKENS,
    REGISTRY_VERSION,
    color_tokens,
    is_registered,
    token_kind,
)


def test_registry_is_versioned_and_unique():
    assert REGISTRY_VERSION >= 1
    assert len(EDITABLE_TOKENS) == len(set(EDITABLE_TOKENS))
    assert all(name.startswith("--") for name in EDITABLE_TOKENS)


def test_registry_covers_core_groups():
    for name in ("--primary", "--primary-foreground", "--border", "--ring", "--chart-5", "--sidebar-ring"):
        assert name in EDITABLE_TOKENS
    assert "--radius" in EDITABLE_TOKENS
    assert "--shadow-2xl" in EDITABLE_TOKENS


def test_token_kind_classification():
    assert token_kind("--radius") == "radius"
    assert token_kind("--spacing") == "spacing"
    assert token_kind("--shadow-md") == "shadow"
    assert token_kind("--primary") == "color"
    assert token_kind("--my-brand") == "color"


def test_color_tokens_excludes_non_colors():
    colors = color_tokens()
    assert "--primary" in colors
    assert "--radius" not in colors
    assert not any(t.startswith("--shadow") for t in colors)


def test_is_registered():
    assert is_registered("--accent")
    assert not is_registered("--does-not-exist")
