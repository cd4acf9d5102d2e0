from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import NoReturn, Optional

import typer

from .config import settings
from .db.session import SessionLocal, scope_session
from .dependencies.documents import get_object_store
from .models import Client
from .services.documents import DocumentFilters, DocumentService, IncomingFile
from .services.errors import DocumentError

app = typer.Typer(help="Compliance DocVault administrative CLI")


def _admin_service(db) -> DocumentService:
    scope_session(db, None, is_admin=True)
    return DocumentService(db, get_object_store())


def _fail(exc: DocumentError) -> NoReturn:
    typer.echo(f"{exc.kind.value}: {exc.message}", err=True)
    raise typer.Exit(code=1)


@app.command()
def create_client(
    company_name: str = typer.Argument(..., help="Company name"),
    client_id: Optional[str] = typer.Option(None, "--id", help="Explicit client id"),
    contact_email: Optional[str] = typer.Option(None, "--email", "-e", help="Contact email"),
) -> None:
    """Register a client (tenant) so documents can be filed for it."""
    db = SessionLocal()
    try:
        client = Client(company_name=company_name, contact_email=contact_email)
        if client_id:
            client.id = client_id
        db.add(client)
        db.commit()
        typer.echo(f"Created client {client.company_name} ({client.id})")
    finally:
        db.close()


@app.command()
def upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="File to upload"),
    client_id: str = typer.Argument(..., help="Client the document belongs to"),
    actor: str = typer.Option(..., "--actor", "-a", help="Admin id recorded as uploader"),
    mime_type: Optional[str] = typer.Option(None, "--mime-type", "-m", help="Declared content type"),
) -> None:
    """Upload a local file on behalf of a client."""
    content = path.read_bytes()
    declared = mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    db = SessionLocal()
    try:
        service = _admin_service(db)
        try:
            document = service.upload_on_behalf(
                IncomingFile(name=path.name, mime_type=declared, size=len(content), content=content),
                client_id,
                actor,
            )
        except DocumentError as exc:
            _fail(exc)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        typer.echo(f"Uploaded {document.file_name} as {document.id} -> {document.storage_key}")
    finally:
        db.close()


@app.command()
def list_documents(
    client_id: str = typer.Argument(..., help="Client id"),
    file_type: Optional[str] = typer.Option(None, "--file-type", "-t"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
    offset: Optional[int] = typer.Option(None, "--offset", min=0),
) -> None:
    """List a client's documents, newest first."""
    db = SessionLocal()
    try:
        service = _admin_service(db)
        try:
            documents = service.list(client_id, DocumentFilters(file_type=file_type, limit=limit, offset=offset))
        except DocumentError as exc:
            _fail(exc)
        for document in documents:
            size = document.file_size if document.file_size is not None else "?"
            typer.echo(f"{document.id}\t{document.uploaded_at:%Y-%m-%d %H:%M}\t{document.file_type}\t{size}\t{document.file_name}")
        if not documents:
            typer.echo("No documents found")
    finally:
        db.close()


@app.command()
def download_url(document_id: str = typer.Argument(...)) -> None:
    """Print a short-lived download URL for a document."""
    db = SessionLocal()
    try:
        try:
            url = _admin_service(db).get_download_url(document_id)
        except DocumentError as exc:
            _fail(exc)
        typer.echo(url)
    finally:
        db.close()


@app.command()
def delete_document(document_id: str = typer.Argument(...)) -> None:
    """Delete a document and its stored object."""
    db = SessionLocal()
    try:
        try:
            _admin_service(db).delete(document_id)
        except DocumentError as exc:
            _fail(exc)
        typer.echo(f"Deleted document {document_id}")
    finally:
        db.close()


@app.command()
def storage_status() -> None:
    """Show which bucket uploads go to."""
    store = get_object_store()
    if store.is_configured:
        typer.echo(f"Bucket {store.bucket} in {settings.aws.region}")
    else:
        typer.echo("Object storage is not configured")


if __name__ == "__main__":
    app()
