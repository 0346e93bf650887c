import typer
from typing_extensions import Annotated
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from pathlib import Path
import asyncio
import logging

from listingai import __version__
from listingai.config import ModelChoice, settings
from listingai.controllers import EditMode, GenerationController
from listingai.core import ListingApp, save_result_image
from listingai.errors import GenerationError
from listingai.utils import read_image_file, to_data_url

app = typer.Typer(
    name="listingai",
    help="🛍️ Write product listing copy and product photos with Google Gemini.",
    add_completion=False,
)
key_app = typer.Typer(help="Manage the stored Gemini API key.")
app.add_typer(key_app, name="key")
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"ListingAI Version: [bold green]{__version__}[/bold green]")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Log request bodies and internal events."),
    ] = False,
):
    if debug:
        logging.basicConfig(level=logging.DEBUG)
        # httpx logs full URLs, which carry the API key.
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_app() -> ListingApp:
    return ListingApp(settings)


def mask(credential: str) -> str:
    if len(credential) <= 8:
        return "*" * len(credential)
    return f"{credential[:4]}{'*' * (len(credential) - 8)}{credential[-4:]}"


def run_controller(controller: GenerationController, coro, label: str):
    with console.status(f"[spinner]{label}...", spinner="dots"):
        result = asyncio.run(coro)
    if result is not None and not result.success and not result.placeholder:
        report_error(controller.error)
    return result


def report_error(error: GenerationError):
    console.print(f"\n[bold red]Error:[/bold red] {error.message}")
    if error.suggests_credential_update:
        console.print(
            "Your API key may be missing, invalid or expired. "
            "Update it with [bold cyan]listingai key set[/bold cyan]."
        )
    raise typer.Exit(code=1)


def load_image(path: Path) -> str:
    if not path.is_file():
        console.print(f"[bold red]Error:[/bold red] Image file not found: {path}")
        raise typer.Exit(code=1)
    mime_type, data = read_image_file(path)
    return to_data_url(data, mime_type)


@key_app.command("set")
def key_set(
    value: Annotated[
        str | None,
        typer.Argument(help="The API key. If not provided, you will be asked to enter it.", show_default=False),
    ] = None,
    verify: Annotated[
        bool,
        typer.Option("--verify/--no-verify", help="Check the key against the API before saving."),
    ] = True,
):
    if value is None:
        value = typer.prompt("Please enter your Gemini API key", hide_input=True)
    listing = build_app()
    try:
        with console.status("[spinner]Validating...", spinner="dots"):
            asyncio.run(listing.update_credential(value, verify=verify))
    except GenerationError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(code=1)
    console.print(f"✅ API key saved to [green]{listing.store.path}[/green]")


@key_app.command("show")
def key_show():
    credential = build_app().store.get()
    if not credential:
        console.print("[yellow]No API key stored.[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"🔑 {mask(credential)}")


@key_app.command("clear")
def key_clear():
    build_app().clear_credential()
    console.print("API key removed.")


@key_app.command("check")
def key_check():
    listing = build_app()
    if not listing.store.exists():
        console.print("[yellow]No API key stored.[/yellow] Set one with [bold cyan]listingai key set[/bold cyan].")
        raise typer.Exit(code=1)
    with console.status("[spinner]Validating...", spinner="dots"):
        valid = asyncio.run(listing.check_credential())
    if not valid:
        console.print("[bold red]The stored API key is invalid.[/bold red]")
        raise typer.Exit(code=1)
    console.print("[bold green]The stored API key is valid.[/bold green]")


@app.command()
def describe(
    prompt: Annotated[
        str | None,
        typer.Option(
            "--prompt",
            "-p",
            help="Product details for the description. If not provided, you will be asked to enter it.",
            show_default=False,
        ),
    ] = None,
    name: Annotated[str, typer.Option("--name", "-n", help="Product name.")] = "",
    tone: Annotated[
        str,
        typer.Option(help="Tone of the copy ('professional', 'playful' or 'concise')."),
    ] = None,
):
    listing = build_app()
    if prompt is None:
        console.print(listing.description.draft_prompt(name), style="dim")
        prompt = typer.prompt("Please enter the product details")
    run_controller(
        listing.description,
        listing.description.generate(prompt, product_name=name, tone=tone),
        "Writing description",
    )
    text = listing.description.accept()
    console.print(Panel(text, title="[bold green]Description ✨[/bold green]", expand=False))
    console.print(f"{len(text)} characters / about {len(text.split())} words", style="dim")


@app.command()
def image(
    prompt: Annotated[
        str | None,
        typer.Option(
            "--prompt",
            "-p",
            help="Description of the product image. If not provided, you will be asked to enter it.",
            show_default=False,
        ),
    ] = None,
    style: Annotated[
        str,
        typer.Option(help="Image style ('product-photography', 'lifestyle', 'minimalist', 'artistic', 'technical')."),
    ] = "product-photography",
    background: Annotated[
        str,
        typer.Option(help="Background ('white', 'transparent', 'gradient', 'contextual', 'studio')."),
    ] = "white",
    aspect_ratio: Annotated[
        str, typer.Option("--aspect-ratio", help="Aspect ratio (e.g., '1:1', '4:3', '16:9').")
    ] = "1:1",
    detail: Annotated[
        str, typer.Option(help="Detail level ('low', 'medium', 'high').")
    ] = "high",
    preset: Annotated[
        str,
        typer.Option(help="Quick preset ('product', 'lifestyle', 'minimal', 'creative'). Overrides style options."),
    ] = None,
    output: Annotated[
        str,
        typer.Option(
            "--output",
            "-o",
            help="Output filename (e.g., my_image.png). If not provided, one will be generated.",
        ),
    ] = None,
    placeholder_on_failure: Annotated[
        bool,
        typer.Option(
            "--placeholder-on-failure",
            help="Save a placeholder image when generation fails. The command still exits with an error.",
            is_flag=True,
        ),
    ] = False,
    num_images: Annotated[
        int,
        typer.Option("--num-images", "-n", min=1, max=4, help="Number of images to generate."),
    ] = 1,
):
    if prompt is None:
        prompt = typer.prompt("Please enter the image description")
    listing = build_app()
    controller = listing.image
    result = run_controller(
        controller,
        controller.generate(
            prompt,
            style=style,
            background=background,
            aspect_ratio=aspect_ratio,
            detail_level=detail,
            preset=preset,
            allow_placeholder=placeholder_on_failure,
            number_of_images=num_images,
        ),
        "Generating image",
    )
    if result.placeholder:
        saved_path = save_result_image(
            result, prompt=prompt, output_filename=output, output_dir=listing.config.output_dir
        )
        console.print(f"[yellow]Placeholder image saved to {saved_path}.[/yellow]")
        report_error(controller.error)
    for i, candidate in enumerate(controller.results):
        if candidate.text:
            title = f"Caption {i + 1}" if len(controller.results) > 1 else "Caption"
            console.print(Panel(candidate.text, title=title, expand=False))
    images = [candidate for candidate in controller.results if candidate.has_image]
    if not images:
        console.print("[yellow]The model returned text only; no image was generated. Try rephrasing the prompt.[/yellow]")
        raise typer.Exit(code=1)
    saved_paths = []
    for i, candidate in enumerate(images):
        saved_path = save_result_image(
            candidate,
            prompt=prompt,
            output_filename=output,
            output_dir=listing.config.output_dir,
            index=i + 1 if len(images) > 1 else None,
        )
        if saved_path is None:
            console.print("[bold red]Error:[/bold red] Failed to save the generated image.")
            raise typer.Exit(code=1)
        saved_paths.append(saved_path)
    console.print(
        Panel(
            "\n".join(f"Image saved to: [green]{path}[/green]" for path in saved_paths),
            title="[bold green]Success ✨[/bold green]",
            expand=False,
        )
    )


@app.command("describe-image")
def describe_image(
    path: Annotated[Path, typer.Argument(help="Product image file.")],
    name: Annotated[str, typer.Option("--name", "-n", help="Product name, improves accuracy.")] = "",
    tone: Annotated[
        str,
        typer.Option(help="Tone of the copy ('professional', 'playful' or 'concise')."),
    ] = None,
    max_length: Annotated[
        int, typer.Option("--max-length", help="Maximum description length in characters.")
    ] = 200,
    model: Annotated[
        ModelChoice,
        typer.Option(help="Vision model to use ('vision' or 'vision_pro')."),
    ] = ModelChoice.VISION,
):
    listing = build_app()
    controller = listing.image_to_text
    controller.select_image(load_image(path), filename=path.name)
    run_controller(
        controller,
        controller.generate(product_name=name, tone=tone, max_length=max_length, model=model),
        "Analysing image",
    )
    console.print(
        Panel(controller.accept(), title="[bold green]Description ✨[/bold green]", expand=False)
    )


@app.command()
def attributes(
    path: Annotated[Path, typer.Argument(help="Product image file.")],
):
    listing = build_app()
    controller = listing.image_to_text
    controller.select_image(load_image(path), filename=path.name)
    with console.status("[spinner]Extracting attributes...", spinner="dots"):
        attrs = asyncio.run(controller.extract_attributes())
    if attrs is None:
        report_error(controller.error)
    table = Table(title=f"🏷️ Product attributes: {path.name}")
    table.add_column("Attribute", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    for label, value in [
        ("Category", attrs.category),
        ("Color", attrs.color),
        ("Material", attrs.material),
        ("Style", attrs.style),
        ("Use cases", ", ".join(attrs.use_cases)),
        ("Size", attrs.size),
        ("Brand", attrs.brand),
        ("Other features", ", ".join(attrs.other_features)),
    ]:
        table.add_row(label, value or "N/A")
    console.print(table)


@app.command("edit-image")
def edit_image(
    path: Annotated[Path, typer.Argument(help="Product image file.")],
    instruction: Annotated[
        str | None,
        typer.Option(
            "--instruction",
            "-i",
            help="What to change. If not provided, you will be asked to enter it.",
            show_default=False,
        ),
    ] = None,
    mode: Annotated[
        EditMode,
        typer.Option(help="'edit' adjusts the image and describes it; 'regenerate' makes a new image."),
    ] = EditMode.EDIT,
    output: Annotated[
        str,
        typer.Option("--output", "-o", help="Output filename. If not provided, one will be generated."),
    ] = None,
):
    if instruction is None:
        instruction = typer.prompt("Please enter the editing instruction")
    listing = build_app()
    controller = listing.image_edit
    controller.select_image(load_image(path), filename=path.name)
    result = run_controller(
        controller, controller.generate(instruction, mode=mode), "Editing image"
    )
    if result.text:
        console.print(Panel(result.text, title="Description", expand=False))
    if not result.has_image:
        console.print("[yellow]The model returned text only; no edited image was produced.[/yellow]")
        return
    saved_path = save_result_image(
        result, prompt=instruction, output_filename=output, output_dir=listing.config.output_dir
    )
    if saved_path is None:
        console.print("[bold red]Error:[/bold red] Failed to save the edited image.")
        raise typer.Exit(code=1)
    console.print(
        Panel(
            f"Image saved to: [green]{saved_path}[/green]",
            title="[bold green]Success ✨[/bold green]",
            expand=False,
        )
    )


@app.command(name="list-models")
def list_models_command():
    table = Table(title="⚙️ Configured ListingAI Models")
    table.add_column("Feature", style="cyan", no_wrap=True)
    table.add_column("Model", style="yellow")
    table.add_column("Image Output", style="magenta")
    for choice, profile in settings.models.items():
        table.add_row(
            choice.value, profile.model, "✅" if profile.supports_image_output else "—"
        )
    console.print(table)
    console.print(f"API root: [green]{settings.api_root}[/green]")


if __name__ == "__main__":
    app()
