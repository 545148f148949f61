from __future__ import annotations

from pathlib import Path

import click

from librarian.orchestrator.errors import LibrarianError


def _fail(exc: LibrarianError) -> click.ClickException:
    """Render an orchestrator error, including the notes attached on the way up."""
    lines = [str(exc), *getattr(exc, "__notes__", [])]
    return click.ClickException("\n".join(lines))


def _setup(verbose: bool) -> None:
    from librarian.orchestrator.log import setup_logging
    from librarian.orchestrator.settings import get_settings

    setup_logging(get_settings().log_level, verbose=verbose)


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Librarian - generate and update client libraries from API definitions."""
    ctx.obj = {"verbose": verbose}


@main.command()
@click.argument("library", required=False)
@click.option("--all", "all_libraries", is_flag=True, default=False, help="Generate every library.")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(path_type=Path),
    help="Workspace configuration (default: from LIBRARIAN_CONFIG_PATH or librarian.yaml).",
)
@click.pass_context
def generate(ctx: click.Context, library: str | None, all_libraries: bool, config_path: Path | None) -> None:
    """Clean, generate, and format LIBRARY (or all libraries)."""
    import anyio

    from librarian.orchestrator.execution.dispatcher import run_generate
    from librarian.orchestrator.models.requests import GenerateRequest
    from librarian.orchestrator.settings import get_settings

    _setup(ctx.obj["verbose"])
    request = GenerateRequest(
        library=library,
        all=all_libraries,
        config_path=config_path or Path(get_settings().config_path),
    )
    try:
        libraries = anyio.run(run_generate, request)
    except LibrarianError as exc:
        raise _fail(exc) from exc
    click.echo(f"Generated {len(libraries)} libraries.")


@main.command()
@click.option("--repo-root", required=True, type=click.Path(path_type=Path), help="Language repository.")
@click.option("--api-root", default=None, type=click.Path(path_type=Path), help="Existing API corpus checkout.")
@click.option("--output", default=None, type=click.Path(path_type=Path), help="Generation output directory.")
@click.option("--api-path", default=None, help="Only update this API.")
@click.option("--push", is_flag=True, default=False, help="Push a branch and open a pull request.")
@click.option("--github-token", default=None, help="Token for pushing (default: LIBRARIAN_GITHUB_TOKEN).")
@click.option("--image", default=None, help="Generator image (default: derived from --language).")
@click.option("--work-root", default=None, type=click.Path(path_type=Path), help="Work directory.")
@click.option("--language", default=None, help="Repository language, used to name the generator image.")
@click.option(
    "--toolchain",
    type=click.Choice(["container", "workspace"]),
    default="workspace",
    show_default=True,
    help="How to run generate / clean / build for each API.",
)
@click.pass_context
def update(
    ctx: click.Context,
    repo_root: Path,
    api_root: Path | None,
    output: Path | None,
    api_path: str | None,
    push: bool,
    github_token: str | None,
    image: str | None,
    work_root: Path | None,
    language: str | None,
    toolchain: str,
) -> None:
    """Regenerate every API of a language repository with new corpus commits."""
    import anyio

    from librarian.orchestrator.execution.updater import run_update
    from librarian.orchestrator.models.enums import Toolchain
    from librarian.orchestrator.models.requests import UpdateRequest

    _setup(ctx.obj["verbose"])
    request = UpdateRequest(
        repo_root=repo_root,
        api_root=api_root,
        output=output,
        api_path=api_path,
        push=push,
        github_token=github_token,
        language=language,
        image=image,
        work_root=work_root,
        toolchain=Toolchain(toolchain),
    )
    try:
        url = anyio.run(run_update, request)
    except LibrarianError as exc:
        raise _fail(exc) from exc
    if url:
        click.echo(f"Opened {url}")


@main.command()
@click.option("--repo-root", required=True, type=click.Path(path_type=Path), help="Language repository.")
@click.option("--api-path", required=True, help="API to add, e.g. google/cloud/functions/v2.")
@click.option("--api-root", default=None, type=click.Path(path_type=Path), help="Existing API corpus checkout.")
@click.option("--push", is_flag=True, default=False, help="Push a branch and open a pull request.")
@click.option("--github-token", default=None, help="Token for pushing (default: LIBRARIAN_GITHUB_TOKEN).")
@click.option("--image", default=None, help="Generator image (default: derived from --language).")
@click.option("--work-root", default=None, type=click.Path(path_type=Path), help="Work directory.")
@click.option("--language", default=None, help="Repository language, used to name the generator image.")
@click.option(
    "--toolchain",
    type=click.Choice(["container", "workspace"]),
    default="workspace",
    show_default=True,
    help="How to run configure / generate / clean / build.",
)
@click.pass_context
def configure(
    ctx: click.Context,
    repo_root: Path,
    api_path: str,
    api_root: Path | None,
    push: bool,
    github_token: str | None,
    image: str | None,
    work_root: Path | None,
    language: str | None,
    toolchain: str,
) -> None:
    """Add API_PATH to a language repository and commit its first generation."""
    import anyio

    from librarian.orchestrator.execution.updater import run_configure
    from librarian.orchestrator.models.enums import Toolchain
    from librarian.orchestrator.models.requests import ConfigureRequest

    _setup(ctx.obj["verbose"])
    request = ConfigureRequest(
        repo_root=repo_root,
        api_path=api_path,
        api_root=api_root,
        push=push,
        github_token=github_token,
        language=language,
        image=image,
        work_root=work_root,
        toolchain=Toolchain(toolchain),
    )
    try:
        url = anyio.run(run_configure, request)
    except LibrarianError as exc:
        raise _fail(exc) from exc
    if url:
        click.echo(f"Opened {url}")


@main.command("generate-api")
@click.option("--api-path", required=True, help="API to generate, e.g. google/cloud/functions/v2.")
@click.option("--api-root", required=True, type=click.Path(path_type=Path), help="API corpus checkout.")
@click.option("--output", default=None, type=click.Path(path_type=Path), help="Output directory.")
@click.option("--generator-input", default=None, type=click.Path(path_type=Path), help="Generator input directory.")
@click.option("--language", default=None, help="Language, used to name the generator image.")
@click.option("--image", default=None, help="Generator image (default: derived from --language).")
@click.option("--work-root", default=None, type=click.Path(path_type=Path), help="Work directory.")
@click.option("--build", is_flag=True, default=False, help="Build the generated code.")
@click.pass_context
def generate_api(
    ctx: click.Context,
    api_path: str,
    api_root: Path,
    output: Path | None,
    generator_input: Path | None,
    language: str | None,
    image: str | None,
    work_root: Path | None,
    build: bool,
) -> None:
    """Generate a single API with the generator image, outside any repository."""
    import anyio

    from librarian.orchestrator.execution.oneshot import run_generate_api
    from librarian.orchestrator.models.requests import GenerateApiRequest

    _setup(ctx.obj["verbose"])
    request = GenerateApiRequest(
        api_path=api_path,
        api_root=api_root,
        output=output,
        generator_input=generator_input,
        language=language,
        image=image,
        work_root=work_root,
        build=build,
    )
    try:
        output_dir = anyio.run(run_generate_api, request)
    except LibrarianError as exc:
        raise _fail(exc) from exc
    click.echo(f"Generated {api_path} into {output_dir}")


@main.command()
def version() -> None:
    """Print the librarian version."""
    from importlib.metadata import version as dist_version

    click.echo(dist_version("librarian"))


if __name__ == "__main__":
    main()
