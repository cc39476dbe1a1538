"""Property-based tests for fill plan computation."""

from hypothesis import given, settings, strategies as st

from apply_desk.core.models import BaseInfo, ContactInfo, FillPlan, NameInfo
from apply_desk.sessions.fill_plan import BLOCKED_FIELDS, FIELD_CONFIDENCE, build_fill_plan


optional_value = st.one_of(st.none(), st.just(""), st.text(min_size=1, max_size=30))

extra_sections = st.dictionaries(
    keys=st.sampled_from(["EEO", "veteran_status", "disability"]),
    values=st.one_of(st.text(max_size=10), st.dictionaries(st.text(max_size=5), st.text(max_size=5), max_size=2)),
    max_size=3,
)


@st.composite
def base_info_strategy(draw):
    """Generate base info with any mix of present, empty and missing values."""
    info = BaseInfo(
        name=NameInfo(first=draw(optional_value), last=draw(optional_value)),
        contact=ContactInfo(email=draw(optional_value), phone=draw(optional_value)),
    )
    extras = draw(extra_sections)
    return BaseInfo.model_validate({**info.model_dump(by_alias=True), **extras})


def source_values(info: BaseInfo):
    return {
        "first_name": info.name.first,
        "last_name": info.name.last,
        "email": info.contact.email,
        "phone": info.contact.phone,
    }


class TestFillPlanProperties:
    """Property-based tests for the fill plan."""

    @given(info=base_info_strategy())
    @settings(max_examples=100, deadline=2000)
    def test_blocked_fields_never_filled(self, info):
        """Blocked fields stay out of ``filled`` whatever the profile holds."""
        plan = build_fill_plan(info)

        filled = set(plan.field_names())
        assert filled.isdisjoint(BLOCKED_FIELDS)
        assert plan.blocked == BLOCKED_FIELDS

    @given(info=base_info_strategy())
    @settings(max_examples=100, deadline=2000)
    def test_only_non_empty_sources_filled(self, info):
        """A field appears iff its source value is non-empty, with that exact value."""
        plan = build_fill_plan(info)
        sources = source_values(info)

        expected = [name for name, _ in FIELD_CONFIDENCE if sources[name]]
        assert list(plan.field_names()) == expected
        for item in plan.filled:
            assert item.value == sources[item.field]
            assert item.value != ""

    @given(info=base_info_strategy())
    @settings(max_examples=50, deadline=2000)
    def test_confidence_fixed_per_field(self, info):
        plan = build_fill_plan(info)
        confidence = dict(FIELD_CONFIDENCE)

        for item in plan.filled:
            assert item.confidence == confidence[item.field]
            assert 0.0 <= item.confidence <= 1.0

    @given(info=base_info_strategy())
    @settings(max_examples=30, deadline=2000)
    def test_fill_plan_is_deterministic(self, info):
        assert build_fill_plan(info) == build_fill_plan(info)


def test_full_profile_plan():
    info = BaseInfo.model_validate({
        "name": {"first": "Ada", "last": "Lovelace"},
        "contact": {"email": "ada@example.com", "phone": "+1 555 0100"},
    })

    plan = build_fill_plan(info)

    assert [(f.field, f.value, f.confidence) for f in plan.filled] == [
        ("first_name", "Ada", 0.98),
        ("last_name", "Lovelace", 0.98),
        ("email", "ada@example.com", 0.97),
        ("phone", "+1 555 0100", 0.8),
    ]
    assert [(s.field, s.suggestion) for s in plan.suggestions] == [
        ("cover_letter", "Short note about relevant skills"),
    ]
    assert plan.blocked == ("EEO", "veteran_status", "disability")


def test_missing_base_info_gives_empty_plan():
    plan = build_fill_plan(None)

    assert plan.filled == ()
    assert plan.blocked == BLOCKED_FIELDS
    assert len(plan.suggestions) == 1


def test_fill_plan_wire_format():
    plan = build_fill_plan(BaseInfo.model_validate({"name": {"first": "Ada"}}))

    payload = plan.model_dump(mode="json", by_alias=True)

    assert payload == {
        "filled": [{"field": "first_name", "value": "Ada", "confidence": 0.98}],
        "suggestions": [{"field": "cover_letter", "suggestion": "Short note about relevant skills"}],
        "blocked": ["EEO", "veteran_status", "disability"],
    }
    assert FillPlan.model_validate(payload) == plan
