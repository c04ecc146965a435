import re

import pytest

from conftest import API_TOKEN, AUTH_HEADERS, CHATBOT_UUID
from simplifique_proxy.api.normalizer import (
    LegacyString,
    MessageArray,
    classify_messages,
    normalize_request,
    parse_authorization,
    resolve_user_key,
)
from simplifique_proxy.core.errors import AuthError, ValidationError

GENERATED_KEY_RE = re.compile(r"^n8n-\d+-[0-9a-z]{9}$")


def _body(content="Qual o prazo de entrega?", **extra):
    body = {"messages": [{"role": "user", "content": content}]}
    body.update(extra)
    return body


def test_parse_authorization_splits_on_first_colon():
    assert parse_authorization(f"Bearer {API_TOKEN}:{CHATBOT_UUID}") == (API_TOKEN, CHATBOT_UUID)


def test_parse_authorization_accepts_uppercase_uuid():
    upper = CHATBOT_UUID.upper()
    assert parse_authorization(f"Bearer tok:{upper}") == ("tok", upper)


@pytest.mark.parametrize("header", [None, "", "Token tok:x", "bearer tok:" + CHATBOT_UUID, "Bearer tok-only"])
def test_parse_authorization_rejects_malformed_headers(header):
    with pytest.raises(AuthError):
        parse_authorization(header)


@pytest.mark.parametrize(
    "uuid_value",
    [
        "not-a-uuid",
        "123e4567e89b42d3a456426614174000",
        "123e4567-e89b-42d3-a456-42661417400",
        "123e4567-e89b-42d3-a456-4266141740000",
        "g23e4567-e89b-42d3-a456-426614174000",
        f"{CHATBOT_UUID}:extra",
    ],
)
def test_parse_authorization_rejects_bad_uuid(uuid_value):
    with pytest.raises(ValidationError):
        parse_authorization(f"Bearer tok:{uuid_value}")


def test_classify_messages_by_shape():
    assert isinstance(classify_messages(["System: x"]), LegacyString)
    assert isinstance(classify_messages(None), MessageArray)
    variant = classify_messages(["a", "b"])
    assert isinstance(variant, MessageArray)
    assert variant.messages == []


def test_array_variant_uses_first_system_and_last_non_empty_message():
    body = {
        "messages": [
            {"role": "system", "content": ""},
            {"role": "system", "content": "  Responda em português.  "},
            {"role": "system", "content": "ignored"},
            {"role": "user", "content": "  primeira  "},
            {"role": "assistant", "content": "resposta"},
            {"role": "user", "content": "  segunda pergunta  "},
            {"role": "assistant", "content": None},
        ]
    }
    query = normalize_request(body, AUTH_HEADERS)
    assert query.system_prompt == "Responda em português."
    assert query.query == "segunda pergunta"
    assert query.api_token == API_TOKEN
    assert query.chatbot_uuid == CHATBOT_UUID


def test_array_variant_flattens_content_parts():
    body = {"messages": [{"role": "user", "content": [{"type": "text", "text": "olá "}, {"type": "text", "text": "mundo"}]}]}
    assert normalize_request(body, AUTH_HEADERS).query == "olá mundo"


def test_legacy_variant():
    body = {
        "model": "gpt-4",
        "messages": ["System: Be helpful.\nContexto Extra Human:\nQuery: What's the weather?\nuser_key: u42"],
    }
    query = normalize_request(body, AUTH_HEADERS)
    assert query.system_prompt == "Be helpful."
    assert query.query == "What's the weather?"
    assert query.user_key == "u42"


@pytest.mark.parametrize(
    "body",
    [
        {"messages": []},
        {},
        {"messages": [{"role": "user", "content": ""}]},
        {"messages": [{"role": "user", "content": "   "}]},
        {"messages": ["nothing to see"]},
    ],
)
def test_missing_query_is_validation_error(body):
    with pytest.raises(ValidationError, match="No user message found"):
        normalize_request(body, AUTH_HEADERS)


def test_non_object_body_is_validation_error():
    with pytest.raises(ValidationError):
        normalize_request(["oi"], AUTH_HEADERS)
    with pytest.raises(ValidationError):
        normalize_request(None, AUTH_HEADERS)


def test_numeric_user_becomes_user_key():
    query = normalize_request(_body(model="gpt-4", user=12345), AUTH_HEADERS)
    assert query.user_key == "12345"


def test_numeric_model_is_an_unknown_model():
    query = normalize_request(_body(model=7), AUTH_HEADERS)
    assert query.model == "7"
    assert query.user_key == "7"


def test_loose_message_shapes_are_tolerated():
    body = {
        "model": None,
        "user": {"id": 1},
        "messages": [{"role": 3, "content": {"text": "do dict"}}, 42, None, {"content": 99}],
    }
    query = normalize_request(body, AUTH_HEADERS)
    assert query.query == "99"
    assert query.system_prompt == ""
    assert query.user_key.startswith("n8n-")


def test_messages_that_are_not_a_list_have_no_query():
    with pytest.raises(ValidationError, match="No user message found"):
        normalize_request({"messages": "Human: oi"}, AUTH_HEADERS)


def test_auth_is_checked_before_body():
    with pytest.raises(AuthError):
        normalize_request(None, {})


def test_unknown_model_becomes_user_key():
    query = normalize_request(_body(model="custom-agent-7"), AUTH_HEADERS)
    assert query.user_key == "custom-agent-7"
    assert query.model == "custom-agent-7"


def test_known_model_without_other_signal_generates_key():
    query = normalize_request(_body(model="gpt-4"), AUTH_HEADERS)
    assert GENERATED_KEY_RE.match(query.user_key)


def test_user_field_beats_headers():
    headers = dict(AUTH_HEADERS, **{"x-user-key": "hk", "x-user-id": "hid"})
    assert normalize_request(_body(model="gpt-4o", user="body-user"), headers).user_key == "body-user"


def test_header_precedence():
    headers = dict(AUTH_HEADERS, **{"X-User-Key": "hk", "X-User-Id": "hid"})
    assert normalize_request(_body(), headers).user_key == "hk"
    headers = dict(AUTH_HEADERS, **{"x-user-id": "hid"})
    assert normalize_request(_body(), headers).user_key == "hid"


def test_embedded_key_beats_unknown_model():
    body = {"model": "custom-agent-7", "messages": ["Contexto Extra Human:\nQuery: oi\nuser_key: embedded"]}
    assert normalize_request(body, AUTH_HEADERS).user_key == "embedded"


def test_resolve_user_key_order():
    assert resolve_user_key("e", "custom", "u", "hk", "hid") == "e"
    assert resolve_user_key("", "custom", "u", "hk", "hid") == "custom"
    assert resolve_user_key("", "simplifique-default", "u", "hk", "hid") == "u"
    assert resolve_user_key(None, None, None, "hk", "hid") == "hk"
    assert resolve_user_key(None, None, "", "", "hid") == "hid"
    assert GENERATED_KEY_RE.match(resolve_user_key(None, None, None, None, None))


def test_dict_content_is_read_from_its_text():
    query = normalize_request(_body(content={"type": "text", "text": "oi"}), AUTH_HEADERS)
    assert query.query == "oi"
