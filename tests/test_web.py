import pytest

from conftest import body_of, parts_payload, reply_json, text_payload
from listingai.utils import to_data_url
from listingai.web import create_app

PNG_DATA_URL = to_data_url("aGVsbG8=", "image/png")


@pytest.fixture
def client_for(make_app):
    def _client(*args, **kwargs):
        listing, recorder = make_app(*args, **kwargs)
        app = create_app(listing)
        app.config["TESTING"] = True
        return app.test_client(), listing, recorder

    return _client


def test_models_endpoint(client_for) -> None:
    client, _, _ = client_for()

    response = client.get("/api/models")

    assert response.status_code == 200
    models = {m["feature"]: m for m in response.get_json()["models"]}
    assert models["image"]["supports_image_output"] is True
    assert models["description"]["model"] == "gemini-1.5-pro"


def test_describe_endpoint(client_for) -> None:
    client, _, recorder = client_for(reply_json(text_payload("Bright red mug.")))

    response = client.post("/api/describe", json={"prompt": "red ceramic mug", "tone": "concise"})

    assert response.status_code == 200
    data = response.get_json()
    assert data["success"] is True
    assert data["text"] == "Bright red mug."
    assert "Concise and punchy" in body_of(recorder.requests[0])["contents"][0]["parts"][0]["text"]


def test_describe_missing_prompt(client_for) -> None:
    client, _, recorder = client_for()

    response = client.post("/api/describe", json={})

    assert response.status_code == 400
    assert response.get_json()["error_kind"] == "missing_input"
    assert recorder.requests == []


def test_describe_without_key_offers_update(client_for) -> None:
    client, _, _ = client_for(credential=None)

    response = client.post("/api/describe", json={"prompt": "mug"})

    assert response.status_code == 400
    assert response.get_json()["offer_credential_update"] is True


def test_invalid_key_maps_to_401(client_for) -> None:
    client, _, _ = client_for(reply_json({"error": {"message": "denied"}}, status_code=403))

    response = client.post("/api/describe", json={"prompt": "mug"})

    assert response.status_code == 401
    assert response.get_json()["error_kind"] == "invalid_credential"


def test_safety_block_maps_to_422(client_for) -> None:
    client, _, _ = client_for(reply_json({"promptFeedback": {"blockReason": "SAFETY"}}))

    response = client.post("/api/describe", json={"prompt": "mug"})

    assert response.status_code == 422
    assert "SAFETY" in response.get_json()["error"]


def test_generate_image_returns_data_url(client_for) -> None:
    payload = parts_payload(
        {"text": "A red mug."}, {"inlineData": {"mimeType": "image/png", "data": "aW1hZ2U="}}
    )
    client, _, _ = client_for(reply_json(payload))

    response = client.post("/api/generate-image", json={"prompt": "red mug", "preset": "product"})

    data = response.get_json()
    assert response.status_code == 200
    assert data["text"] == "A red mug."
    assert data["image_data"] == "data:image/png;base64,aW1hZ2U="
    assert data["placeholder"] is False


def test_generate_image_placeholder_opt_in(client_for) -> None:
    client, _, _ = client_for(reply_json({"error": {"message": "boom"}}, status_code=500))

    plain = client.post("/api/generate-image", json={"prompt": "red mug"})
    stand_in = client.post("/api/generate-image", json={"prompt": "red mug", "allow_placeholder": True})

    assert plain.status_code == 502
    assert plain.get_json()["image_data"] is None
    assert stand_in.status_code == 502
    data = stand_in.get_json()
    assert data["success"] is False
    assert data["error_kind"] == "http_failure"
    assert data["placeholder"] is True
    assert data["image_data"].startswith("data:image/png;base64,")


def test_describe_image_endpoint(client_for) -> None:
    client, _, recorder = client_for(reply_json(text_payload("A canvas tote.")))

    response = client.post(
        "/api/describe-image", json={"image": PNG_DATA_URL, "model": "vision_pro", "max_length": 80}
    )

    assert response.status_code == 200
    assert response.get_json()["text"] == "A canvas tote."
    assert recorder.requests[0].url.path.endswith("/gemini-2.0-pro:generateContent")


def test_describe_image_unknown_model(client_for) -> None:
    client, _, recorder = client_for()

    response = client.post("/api/describe-image", json={"image": PNG_DATA_URL, "model": "gpt"})

    assert response.status_code == 400
    assert recorder.requests == []


def test_describe_image_requires_image(client_for) -> None:
    client, _, _ = client_for()

    response = client.post("/api/describe-image", json={})

    assert response.status_code == 400
    assert response.get_json()["error_kind"] == "missing_input"


def test_attributes_endpoint(client_for) -> None:
    client, _, _ = client_for(reply_json(text_payload('{"category": "mug", "useCases": ["coffee"]}')))

    response = client.post("/api/attributes", json={"image": PNG_DATA_URL})

    assert response.status_code == 200
    attributes = response.get_json()["attributes"]
    assert attributes["category"] == "mug"
    assert attributes["use_cases"] == ["coffee"]


def test_edit_image_regenerate_text_only(client_for) -> None:
    client, _, _ = client_for(reply_json(text_payload("Sorry.")))

    response = client.post(
        "/api/edit-image", json={"instruction": "from above", "mode": "regenerate", "image": PNG_DATA_URL}
    )

    assert response.status_code == 502
    assert response.get_json()["error_kind"] == "parse_failure"


def test_edit_image_unknown_mode(client_for) -> None:
    client, _, _ = client_for()

    response = client.post("/api/edit-image", json={"instruction": "x", "mode": "paint", "image": PNG_DATA_URL})

    assert response.status_code == 400


def test_credential_lifecycle(client_for) -> None:
    client, listing, recorder = client_for(reply_json({"models": []}), credential=None)

    assert client.get("/api/credential").get_json()["exists"] is False

    saved = client.post("/api/credential", json={"credential": "web-key"})
    assert saved.status_code == 200
    assert listing.store.get() == "web-key"
    assert recorder.requests[0].url.params["key"] == "web-key"
    assert client.get("/api/credential").get_json()["exists"] is True

    removed = client.delete("/api/credential")
    assert removed.get_json()["exists"] is False
    assert not listing.context.has_provider


def test_blank_credential_rejected(client_for) -> None:
    client, _, _ = client_for(credential=None)

    response = client.post("/api/credential", json={"credential": "  "})

    assert response.status_code == 400


def test_unknown_route_is_json_404(client_for) -> None:
    client, _, _ = client_for()

    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.get_json()["success"] is False


def test_generate_image_returns_every_candidate(client_for) -> None:
    payload = {
        "candidates": [
            {"content": {"parts": [{"inlineData": {"mimeType": "image/png", "data": "b25l"}}]}},
            {"content": {"parts": [{"inlineData": {"mimeType": "image/png", "data": "dHdv"}}]}},
        ]
    }
    client, _, recorder = client_for(reply_json(payload))

    response = client.post("/api/generate-image", json={"prompt": "red mug", "number_of_images": 2})

    assert response.status_code == 200
    images = response.get_json()["images"]
    assert [image["image_data"] for image in images] == [
        "data:image/png;base64,b25l",
        "data:image/png;base64,dHdv",
    ]
    assert body_of(recorder.requests[0])["generationConfig"]["candidateCount"] == 2


def test_generate_image_count_out_of_range(client_for) -> None:
    client, _, recorder = client_for()

    response = client.post("/api/generate-image", json={"prompt": "red mug", "number_of_images": 9})

    assert response.status_code == 400
    assert recorder.requests == []


def test_non_numeric_max_length_is_bad_request(client_for) -> None:
    client, _, recorder = client_for()

    response = client.post("/api/describe-image", json={"image": PNG_DATA_URL, "max_length": "abc"})

    assert response.status_code == 400
    assert response.get_json()["error_kind"] == "missing_input"
    assert recorder.requests == []


def test_non_string_prompt_is_bad_request(client_for) -> None:
    client, _, recorder = client_for()

    response = client.post("/api/describe", json={"prompt": 123})

    assert response.status_code == 400
    assert "prompt" in response.get_json()["error"]
    assert recorder.requests == []


def test_non_boolean_flag_is_bad_request(client_for) -> None:
    client, _, _ = client_for()

    response = client.post("/api/generate-image", json={"prompt": "red mug", "allow_placeholder": "yes"})

    assert response.status_code == 400


def test_non_object_body_is_treated_as_empty(client_for) -> None:
    client, _, _ = client_for()

    response = client.post("/api/describe", json=["red mug"])

    assert response.status_code == 400
    assert response.get_json()["error_kind"] == "missing_input"
