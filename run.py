#!/usr/bin/env python3
"""
Start one of the web security demo servers.

    python run.py vulnerable   # SQLi / XSS / CSRF, unprotected  (port 3000)
    python run.py secured      # blog with the fixes applied     (port 3001)
    python run.py bank         # CSRF transfer demo              (port 3002)
"""

import logging
import os

import click
from dotenv import load_dotenv

load_dotenv()


def _serve(module, host, port, debug):
    config_name = 'development' if debug else os.environ.get('FLASK_ENV', 'default')
    app = module.create_app(config_name)

    logging.basicConfig(level=app.config['LOG_LEVEL'],
                        format='%(asctime)s %(levelname)s [%(name)s] %(message)s')

    click.echo(f"Server is running on http://{host}:{port}")
    # One request at a time, like the demos were written for
    app.run(host=host, port=port, debug=debug, threaded=False)


def server_options(default_port):
    def decorator(f):
        f = click.option('--debug', is_flag=True, help='Enable debug mode')(f)
        f = click.option('--port', default=default_port, show_default=True, help='Port to bind to')(f)
        f = click.option('--host', default='127.0.0.1', show_default=True, help='Host to bind to')(f)
        return f
    return decorator


@click.group()
@click.version_option(version='1.0.0', prog_name='websec-demos')
def cli():
    """Web security demo servers."""
    pass


@cli.command()
@server_options(3000)
def vulnerable(host, port, debug):
    """Deliberately vulnerable server (SQLi, XSS, CSRF)."""
    import app
    click.secho("WARNING: this server is intentionally insecure. Bind it to localhost only.", fg='red')
    _serve(app, host, port, debug)


@cli.command()
@server_options(3001)
def secured(host, port, debug):
    """Blog server with parameterized queries and sanitized output."""
    import app_secured
    _serve(app_secured, host, port, debug)


@cli.command()
@server_options(3002)
def bank(host, port, debug):
    """Bank transfer CSRF demo (vulnerable and secure endpoints)."""
    import bank_app
    _serve(bank_app, host, port, debug)


if __name__ == '__main__':
    cli()
