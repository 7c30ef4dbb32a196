"""Typer CLI for the Telematics IO Manager."""

import asyncio

import typer
from rich.console import Console

app = typer.Typer(name="iom", help="Telematics IO Manager: catalog administration API")
console = Console()


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind host (defaults to IOM_HOST)"),
    port: int = typer.Option(None, help="Bind port (defaults to IOM_PORT)"),
):
    """Start the API server."""
    import uvicorn
    from io_manager.app import create_app
    from io_manager.common.config import get_settings

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    console.print(f"[bold green]Starting Telematics IO Manager on {host}:{port}[/bold green]")
    uvicorn.run(create_app(settings), host=host, port=port)


@app.command("create-admin")
def create_admin(
    username: str = typer.Argument(..., help="Login name"),
    email: str = typer.Argument(..., help="Email address"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password",
    ),
):
    """Create an administrator account, or reset it if it exists."""
    from io_manager.auth.bootstrap import create_admin_user
    from io_manager.common.config import get_settings
    from io_manager.deps import Container

    settings = get_settings()
    if len(password) < settings.min_password_length:
        console.print(
            f"[bold red]Error:[/bold red] password must be at least "
            f"{settings.min_password_length} characters"
        )
        raise typer.Exit(1)

    async def _run() -> int:
        container = Container(settings)
        await container.startup()
        try:
            async with container.db.get_session() as session:
                user = await create_admin_user(
                    session, username, email, password, role_name=settings.admin_role_name,
                )
                return user.user_id
        finally:
            await container.shutdown()

    user_id = asyncio.run(_run())
    console.print(f"[bold green]Administrator ready[/bold green]: {username} (UserID {user_id})")


@app.command("hash-password")
def hash_password_cmd(
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Password to hash"),
):
    """Print an argon2 hash for a password."""
    from io_manager.auth.passwords import hash_password

    console.print(hash_password(password))


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] v{data['version']}")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
