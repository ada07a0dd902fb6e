import pytest

from services.prompts import PROMPT_TEMPLATES, MissingSlotError, get_template


def test_every_template_renders_with_required_slots():
    for name, template in PROMPT_TEMPLATES.items():
        text = template.render(**{slot: f"<{slot}>" for slot in template.required})
        for slot in template.required:
            assert f"<{slot}>" in text, name


def test_missing_required_slot():
    with pytest.raises(MissingSlotError) as exc:
        get_template("topic_simple").render(field_of_study="  ")
    assert exc.value.slots == ["field_of_study"]


def test_unknown_slot_is_rejected():
    with pytest.raises(ValueError):
        get_template("scholar").render(keywords="k", level="arshad")


def test_optional_slots_default_to_empty():
    text = get_template("pre_proposal").render(topic="موضوع")
    assert 'Thesis Topic: "موضوع"' in text
    assert "{context}" not in text


def test_json_braces_survive_formatting():
    text = get_template("literature").render(keywords="بازاریابی")
    assert '{"items": [{"paragraph": "string", "reference": "string"}]}' in text


def test_plain_text_template_has_no_system_message():
    template = PROMPT_TEMPLATES["translate_topic"]
    messages = template.messages(text="موضوع")
    assert [m["role"] for m in messages] == ["user"]
    assert template.json_mode is False


def test_unknown_template():
    with pytest.raises(KeyError):
        get_template("poem")
