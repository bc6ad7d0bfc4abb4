"""Web server entry point for querydesk-web."""

import click
from flask import Flask


@click.command()
@click.option("--host", default=None, help="Bind address (overrides config)")
@click.option("--port", default=None, type=int, help="Port (overrides config)")
@click.option("--workers", default=2, help="Number of gunicorn workers")
@click.option("--dev", is_flag=True, help="Run Flask development server with debug mode")
def main(host: str | None, port: int | None, workers: int, dev: bool) -> None:
    """Start the QueryDesk API server."""
    from querydesk import create_app

    app = create_app()

    if dev:
        app.run(
            debug=True,
            host=host or app.config.get("DEV_HOST", "127.0.0.1"),
            port=port or app.config.get("DEV_PORT", 8080),
        )
        return

    bind = f"{host or app.config.get('HOST', '0.0.0.0')}:{port or app.config.get('PORT', 8080)}"

    import gunicorn.app.base

    class QueryDeskApp(gunicorn.app.base.BaseApplication):
        def load_config(self) -> None:
            self.cfg.set("bind", bind)  # type: ignore[union-attr]
            self.cfg.set("workers", str(workers))  # type: ignore[union-attr]
            self.cfg.set("preload_app", True)  # type: ignore[union-attr]

        def load(self) -> Flask:
            return app

    QueryDeskApp().run()
