"""One-shot generation of a single API with the language's generator image.

No language repository is involved: the image generates ``api_path`` from a
corpus checkout into an output directory and, when asked, builds the result
in place.
"""

from __future__ import annotations

from datetime import datetime
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger

from librarian.orchestrator.errors import ConfigurationError
from librarian.orchestrator.execution.toolchain import ContainerToolchain, derive_image
from librarian.orchestrator.execution.updater import create_work_root
from librarian.orchestrator.models.requests import GenerateApiRequest
from librarian.orchestrator.settings import get_settings
from librarian.orchestrator.store.local import GENERATOR_INPUT_DIR


async def run_generate_api(request: GenerateApiRequest, *, started_at: datetime | None = None) -> Path:
    """Generate (and optionally build) one API; return the output directory.

    Raises
    ------
    ConfigurationError:
        Neither an image nor a language to derive one from was given.
    GenerationError:
        The generator image failed.
    """
    settings = get_settings()
    image = request.image or settings.image
    if not (image or request.language):
        raise ConfigurationError("--language is required to derive the generator image")

    work_root = await to_thread.run_sync(
        partial(create_work_root, started_at or datetime.now(), request.work_root or settings.work_root)
    )
    if request.output is not None:
        output = Path(request.output)
    else:
        output = work_root / "output"
        logger.info("No output directory specified. Defaulting to {}", output)
    await to_thread.run_sync(partial(output.mkdir, parents=True, exist_ok=True))

    # Mounted even when empty; only some generators read it.
    generator_input = request.generator_input or work_root / GENERATOR_INPUT_DIR
    await to_thread.run_sync(partial(Path(generator_input).mkdir, parents=True, exist_ok=True))

    toolchain = ContainerToolchain(
        derive_image(None, request.language or "", image=image, repository=settings.repository)
    )
    await toolchain.generate(request.api_path, request.api_root, output, Path(generator_input))
    if request.build:
        await toolchain.build_output(output, request.api_path)
    return output
