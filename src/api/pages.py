"""Contact pages: list, create, edit, delete."""

from __future__ import annotations

import html

from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from src.db.connection import get_db
from src.db.models import NAME_MAX_LENGTH, Customer, CustomerRepository

router = APIRouter()


def _database_provider(request: Request) -> str:
    return request.app.state.app_configuration.database_provider


# ---------------------------------------------------------------------------
# HTML pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
async def index_page(request: Request) -> HTMLResponse:
    """Contact list with edit links and delete buttons."""
    with get_db().session() as session:
        customers = CustomerRepository(session).get_all()
    return HTMLResponse(_render_index(customers, _database_provider(request)))


@router.post("/customers/{customer_id}/delete")
async def delete_customer(customer_id: int) -> RedirectResponse:
    with get_db().session() as session:
        CustomerRepository(session).delete(customer_id)
    return RedirectResponse(url="/", status_code=303)


@router.get("/customers/create", response_class=HTMLResponse)
async def create_page() -> HTMLResponse:
    return HTMLResponse(_render_form("Create", "/customers/create"))


@router.post("/customers/create", response_model=None)
async def create_customer(name: str = Form("")) -> HTMLResponse | RedirectResponse:
    try:
        with get_db().session() as session:
            CustomerRepository(session).create(name)
    except ValueError as exc:
        return HTMLResponse(
            _render_form("Create", "/customers/create", name=name, error=str(exc)),
            status_code=400,
        )
    return RedirectResponse(url="/", status_code=303)


@router.get("/customers/{customer_id}/edit", response_class=HTMLResponse)
async def edit_page(customer_id: int) -> HTMLResponse:
    with get_db().session() as session:
        customer = CustomerRepository(session).get(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail=f"Customer {customer_id} not found")
    return HTMLResponse(
        _render_form("Edit", f"/customers/{customer_id}/edit", name=customer.name)
    )


@router.post("/customers/{customer_id}/edit", response_model=None)
async def edit_customer(customer_id: int, name: str = Form("")) -> HTMLResponse | RedirectResponse:
    try:
        with get_db().session() as session:
            found = CustomerRepository(session).update(customer_id, name)
    except ValueError as exc:
        return HTMLResponse(
            _render_form("Edit", f"/customers/{customer_id}/edit", name=name, error=str(exc)),
            status_code=400,
        )
    if not found:
        raise HTTPException(status_code=404, detail=f"Customer {customer_id} not found")
    return RedirectResponse(url="/", status_code=303)


# ---------------------------------------------------------------------------
# HTML rendering
# ---------------------------------------------------------------------------

_CSS = """\
body { font-family: system-ui, sans-serif; margin: 2rem auto; max-width: 48rem; color: #222; }
table { border-collapse: collapse; width: 100%; }
th, td { text-align: left; padding: .4rem .6rem; border-bottom: 1px solid #ddd; }
form.inline { display: inline; }
.error { color: #b00020; }
.footer { margin-top: 2rem; color: #666; font-size: .9rem; }
"""


def _e(text: str | None) -> str:
    """HTML-escape."""
    if text is None:
        return ""
    return html.escape(str(text))


def _layout(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>{_e(title)} - Contacts</title>
<style>{_CSS}</style></head><body>
{body}
</body></html>"""


def _render_index(customers: list[Customer], database_provider: str) -> str:
    rows = ""
    for customer in customers:
        cid = customer.id
        rows += f"""<tr>
          <td>{cid}</td>
          <td>{_e(customer.name)}</td>
          <td>
            <a href="/customers/{cid}/edit">Edit</a>
            <form class="inline" method="post" action="/customers/{cid}/delete">
              <button type="submit">Delete</button>
            </form>
          </td>
        </tr>"""

    if not customers:
        rows = '<tr><td colspan="3">No contacts yet.</td></tr>'

    return _layout(
        "Contacts",
        f"""<h1>Contacts</h1>
<table>
  <thead><tr><th>ID</th><th>Name</th><th></th></tr></thead>
  <tbody>{rows}</tbody>
</table>
<p><a href="/customers/create">Create new</a></p>
<p class="footer">Database provider: {_e(database_provider)}</p>""",
    )


def _render_form(title: str, action: str, *, name: str = "", error: str | None = None) -> str:
    error_html = f'<p class="error">{_e(error)}</p>' if error else ""
    return _layout(
        title,
        f"""<h1>{_e(title)} contact</h1>
{error_html}
<form method="post" action="{_e(action)}">
  <label for="name">Name</label>
  <input id="name" name="name" type="text" maxlength="{NAME_MAX_LENGTH}" value="{_e(name)}">
  <button type="submit">Save</button>
</form>
<p><a href="/">Back to list</a></p>""",
    )
