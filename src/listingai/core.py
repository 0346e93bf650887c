from listingai.config import Settings, settings
from listingai.context import AppContext
from listingai.controllers import (
    DescriptionController,
    ImageEditController,
    ImageGenerationController,
    ImageToTextController,
)
from listingai.credentials import CredentialStore
from listingai.events import CredentialCleared, CredentialUpdated, EventBus
from listingai.models import GenerationResult
from listingai.utils import (
    extension_for_mime,
    generate_filename,
    get_image_extension,
    save_image_from_b64,
)
from pathlib import Path
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class ListingApp:
    """Composition root: builds the shared context and wires the controllers."""

    def __init__(
        self,
        config: Settings = settings,
        store: Optional[CredentialStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.bus = EventBus()
        self.context = AppContext(config, transport=transport)
        self.store = store or CredentialStore(config.credential_file)

        self.bus.subscribe(CredentialUpdated, self._on_credential_updated)
        self.bus.subscribe(CredentialCleared, self._on_credential_cleared)
        self.context.set_credential(self.store.get())

        self.description = DescriptionController(self.context, self.bus)
        self.image = ImageGenerationController(self.context, self.bus)
        self.image_to_text = ImageToTextController(self.context, self.bus)
        self.image_edit = ImageEditController(self.context, self.bus)

    def _on_credential_updated(self, event: CredentialUpdated) -> None:
        self.context.set_credential(event.credential)

    def _on_credential_cleared(self, event: CredentialCleared) -> None:
        self.context.set_credential(None)

    async def update_credential(self, value: str, verify: bool = True) -> str:
        saved = await self.store.save(value, validator=self.context.check if verify else None)
        self.bus.publish(CredentialUpdated(credential=saved))
        return saved

    def clear_credential(self) -> None:
        self.store.clear()
        self.bus.publish(CredentialCleared())

    async def check_credential(self) -> bool:
        credential = self.store.get()
        if not credential:
            return False
        return await self.context.check(credential)


def save_result_image(
    result: GenerationResult,
    prompt: Optional[str] = None,
    output_filename: Optional[str] = None,
    output_dir: Optional[str] = None,
    index: Optional[int] = None,
) -> Optional[Path]:
    """Write the result's image under ``output_dir``.

    ``index`` (1-based) is appended to the file stem when several images
    come from one request.
    """
    if not result.has_image:
        return None
    if output_filename:
        output_ext = get_image_extension(output_filename)
        current_filename = output_filename
        if not Path(output_filename).suffix:
            current_filename = f"{output_filename}.{output_ext}"
    else:
        current_filename = generate_filename(
            prompt=prompt, extension=extension_for_mime(result.mime_type)
        )
    if index is not None:
        name_part, ext_part = Path(current_filename).stem, Path(current_filename).suffix
        current_filename = f"{name_part}_{index}{ext_part}"
    output_file_path = Path(output_dir or settings.output_dir) / current_filename
    saved_path = save_image_from_b64(result.image_data, output_file_path)
    if saved_path is None:
        logger.error(f"Failed to save image to {output_file_path}")
    return saved_path
