"""
RAI CLI - command-line interface for the RAI backend.

Server management, database setup and a few commands for trying the
assistant from a terminal.
"""

import uuid
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from rai.logging_config import setup_logging

app = typer.Typer(
    name="rai",
    help="RAI - chat assistant backend",
    no_args_is_help=True,
)

console = Console()


def _init_cli_logging() -> None:
    # Fall back to console logging if the log directory is not writable
    try:
        setup_logging(context="cli")
    except PermissionError:
        import logging

        logging.basicConfig(level=logging.INFO)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind to"),
    port: Optional[int] = typer.Option(None, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """
    Start the FastAPI server.

    Serves the HTTP API and the realtime socket.
    """
    import uvicorn

    from rai.config import settings

    host = host or settings.api_host
    port = port or settings.api_port

    console.print("[bold green]Starting RAI API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Reload: {reload}")
    console.print(f"\n  API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "rai.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command("init-db")
def init_db_command(
    migrate: bool = typer.Option(
        True, help="Apply Alembic migrations (use --no-migrate to create tables directly)"
    ),
) -> None:
    """Create the database schema."""
    _init_cli_logging()

    if migrate:
        from alembic import command

        from rai.startup import get_alembic_config

        console.print("[bold blue]Applying migrations...[/bold blue]")
        command.upgrade(get_alembic_config(), "head")
    else:
        from rai.db.connection import init_db

        console.print("[bold blue]Creating tables...[/bold blue]")
        init_db()

    console.print("[green]✓ Database ready[/green]")


@app.command("create-user")
def create_user(
    username: str = typer.Argument(..., help="Unique username"),
    email: str = typer.Argument(..., help="Email address"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True
    ),
    plan: str = typer.Option("free", help="Subscription plan"),
) -> None:
    """Register a user."""
    from rai.db.connection import db_session
    from rai.db.repositories import UserRepository
    from rai.exceptions import ValidationError
    from rai.models.db import SubscriptionPlan

    _init_cli_logging()

    try:
        subscription_plan = SubscriptionPlan(plan)
    except ValueError:
        console.print(f"[bold red]Error:[/bold red] Unknown plan: {plan}")
        raise typer.Exit(1)

    try:
        with db_session() as session:
            user = UserRepository(session).register(
                username, email, password, subscription_plan=subscription_plan
            )
            user_id = user.id
            username = user.username
    except ValidationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓ Created user {username}[/green]")
    console.print(f"  ID: {user_id}")


@app.command()
def classify(
    message: str = typer.Argument(..., help="Message to classify"),
) -> None:
    """Show the intent a message would be routed to."""
    from rai.intent import classify as classify_message

    result = classify_message(message)
    console.print(
        f"[bold]{result.category.value}[/bold] (confidence {result.confidence:.2f})"
    )


@app.command()
def chat(
    user_id: str = typer.Argument(..., help="UUID of the acting user"),
    message: str = typer.Argument(..., help="Message to send"),
    conversation: Optional[str] = typer.Option(
        None, "--conversation", "-c", help="Continue an existing conversation"
    ),
) -> None:
    """Send one message and print the exchange."""
    from rai.config import settings
    from rai.db.connection import db_session
    from rai.exceptions import RaiError
    from rai.gateway import build_gateway
    from rai.services import ConversationOrchestrator

    _init_cli_logging()

    try:
        user_uuid = uuid.UUID(user_id)
        conversation_uuid = uuid.UUID(conversation) if conversation else None
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] Invalid ID: {e}")
        raise typer.Exit(1)

    gateway = build_gateway(settings)
    if not gateway.is_configured:
        console.print(
            "[yellow]⚠ No AI provider configured; replies will be apologies[/yellow]"
        )

    try:
        with db_session() as session:
            result = ConversationOrchestrator(session, gateway).handle_turn(
                user_uuid, message, conversation_id=conversation_uuid
            )
    except RaiError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(title=result.conversation.title, show_lines=True)
    table.add_column("Sender", style="cyan")
    table.add_column("Type")
    table.add_column("Content")
    for payload in (result.user_message, result.ai_message):
        table.add_row(payload.sender.value, payload.type.value, payload.content)
    console.print(table)
    console.print(f"  Conversation: {result.conversation_id}")


if __name__ == "__main__":
    app()
