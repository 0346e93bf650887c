import asyncio

import pytest

from conftest import reply_json, text_payload
from listingai.core import ListingApp, save_result_image
from listingai.errors import InvalidCredential, MissingInput
from listingai.events import CredentialUpdated
from listingai.models import GenerationResult
from listingai.utils import render_placeholder_image


def test_stored_credential_builds_provider(make_app) -> None:
    listing, _ = make_app(credential="stored-key")

    assert listing.context.has_provider
    assert listing.context.provider.api_key == "stored-key"


def test_no_credential_means_no_provider(make_app) -> None:
    listing, _ = make_app(credential=None)

    assert not listing.context.has_provider
    with pytest.raises(MissingInput):
        listing.context.provider


def test_update_credential_checks_saves_and_publishes(make_app) -> None:
    listing, recorder = make_app(reply_json({"models": []}), credential=None)
    events = []
    listing.bus.subscribe(CredentialUpdated, events.append)

    saved = asyncio.run(listing.update_credential(" fresh-key "))

    assert saved == "fresh-key"
    assert listing.store.get() == "fresh-key"
    assert listing.context.provider.api_key == "fresh-key"
    assert [e.credential for e in events] == ["fresh-key"]
    assert recorder.requests[0].method == "GET"
    assert recorder.requests[0].url.params["key"] == "fresh-key"


def test_rejected_credential_keeps_old_provider(make_app) -> None:
    listing, _ = make_app(reply_json({"error": {"message": "bad"}}, status_code=400))

    with pytest.raises(InvalidCredential):
        asyncio.run(listing.update_credential("wrong-key"))

    assert listing.store.get() == "test-key"
    assert listing.context.provider.api_key == "test-key"


def test_update_without_verify_skips_check(make_app) -> None:
    listing, recorder = make_app(credential=None)

    asyncio.run(listing.update_credential("offline-key", verify=False))

    assert recorder.requests == []
    assert listing.context.provider.api_key == "offline-key"


def test_new_credential_is_used_by_next_request(make_app) -> None:
    listing, recorder = make_app(reply_json(text_payload("copy")))

    asyncio.run(listing.update_credential("second-key", verify=False))
    asyncio.run(listing.description.generate("mug"))

    assert recorder.requests[0].url.params["key"] == "second-key"


def test_clear_credential_drops_provider(make_app) -> None:
    listing, _ = make_app()

    listing.clear_credential()

    assert listing.store.get() is None
    assert not listing.context.has_provider


def test_check_credential_without_key_is_false(make_app) -> None:
    listing, recorder = make_app(credential=None)

    assert asyncio.run(listing.check_credential()) is False
    assert recorder.requests == []


def test_save_result_image_writes_png(tmp_path) -> None:
    result = GenerationResult(image_data=render_placeholder_image(), mime_type="image/png")

    path = save_result_image(result, prompt="red mug", output_dir=str(tmp_path))

    assert path.parent == tmp_path
    assert path.name.startswith("red_mug_")
    assert path.suffix == ".png"
    assert path.read_bytes().startswith(b"\x89PNG")


def test_save_result_image_honours_output_name(tmp_path) -> None:
    result = GenerationResult(image_data=render_placeholder_image(), mime_type="image/png")

    path = save_result_image(result, output_filename="hero", output_dir=str(tmp_path))

    assert path == tmp_path / "hero.png"


def test_save_result_image_without_image(tmp_path) -> None:
    assert save_result_image(GenerationResult(text="only text"), output_dir=str(tmp_path)) is None


def test_default_app_uses_given_store(test_settings) -> None:
    listing = ListingApp(test_settings)

    assert listing.store.path == test_settings.credential_file
    assert not listing.context.has_provider


def test_save_result_image_numbers_files(tmp_path) -> None:
    result = GenerationResult(image_data=render_placeholder_image(), mime_type="image/png")

    first = save_result_image(result, output_filename="hero.png", output_dir=str(tmp_path), index=1)
    second = save_result_image(result, prompt="red mug", output_dir=str(tmp_path), index=2)

    assert first == tmp_path / "hero_1.png"
    assert second.name.startswith("red_mug_")
    assert second.name.endswith("_2.png")
