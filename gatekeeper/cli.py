"""
Command-line tools for operating the gatekeeper.

Configuration is taken from the environment, as for the web service.

.. code-block:: bash

   $ OAUTH2_TOKEN_URL=https://auth.example.com/oauth2/token \
     OAUTH2_CLIENT_ID=orders OAUTH2_CLIENT_SECRET=... gatekeeper service-token
   ory_at_IdJ6...

   $ gatekeeper store-session --token ory_at_x9... --customer-id 42 \
     --phone +15551234 --name Ann

   $ gatekeeper delete-session ory_at_x9...

"""

import click

from .domain import SessionRecord
from .exceptions import ConfigurationError, ProtocolError, TransportError
from .factory import create_app
from .services import authserver, session_store


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Manage service tokens and customer sessions."""
    ctx.obj = create_app()


@cli.command('service-token')
@click.pass_obj
def service_token(app) -> None:
    """Get an access token for this service (client credentials grant)."""
    with app.app_context():
        try:
            token = authserver.acquire_service_token()
        except (ConfigurationError, TransportError, ProtocolError) as e:
            raise click.ClickException(str(e))
    click.echo(token)


@cli.command('store-session')
@click.option('--token', prompt='Access token')
@click.option('--customer-id', prompt='Numeric customer ID',
              type=click.IntRange(min=0))
@click.option('--phone', prompt='Phone number')
@click.option('--name', prompt='Name')
@click.pass_obj
def store_session(app, token: str, customer_id: int, phone: str,
                  name: str) -> None:
    """Store a session for a customer's access token."""
    record = SessionRecord(customer_id=customer_id, phone=phone, name=name)
    with app.app_context():
        try:
            session_store.store(token, record)
        except TransportError as e:
            raise click.ClickException(str(e))
        ttl = session_store.current_session().ttl
    click.echo(f'Session stored; expires in {ttl} seconds')


@cli.command('delete-session')
@click.argument('token')
@click.pass_obj
def delete_session(app, token: str) -> None:
    """Delete the session for an access token."""
    with app.app_context():
        try:
            session_store.delete(token)
        except TransportError as e:
            raise click.ClickException(str(e))
    click.echo('Session deleted')


if __name__ == '__main__':
    cli()
