"""Tests for device fingerprints."""

from aaref.identity.fingerprint import DeviceProfile, SubmitterSession


def _make_profile(**overrides) -> DeviceProfile:
    base = dict(
        language="ar-EG", screen_width=1920, screen_height=1080,
        color_depth=24, timezone_offset=-120, hardware_concurrency="8",
        max_touch_points=0, pixel_ratio=1.0,
    )
    base.update(overrides)
    return DeviceProfile(**base)


class TestFingerprint:
    def test_deterministic(self) -> None:
        assert _make_profile().fingerprint() == _make_profile().fingerprint()

    def test_sixteen_hex_chars(self) -> None:
        fp = _make_profile().fingerprint()
        assert len(fp) == 16
        int(fp, 16)

    def test_attribute_change_changes_fingerprint(self) -> None:
        assert _make_profile().fingerprint() != _make_profile(screen_width=1280).fingerprint()

    def test_canonical_field_order(self) -> None:
        assert _make_profile().canonical() == "ar-EG|1920|1080|24|-120|8|0|1.0"

    def test_from_dict_ignores_unknown_keys(self) -> None:
        profile = DeviceProfile.from_dict({"language": "en-US", "user_agent": "x"})
        assert profile.language == "en-US"
        assert profile.hardware_concurrency == "?"


class TestSubmitterSession:
    def test_identify_is_cached(self) -> None:
        session = SubmitterSession(_make_profile())
        first = session.identify()
        assert session.identify() is first
        assert first == _make_profile().fingerprint()
