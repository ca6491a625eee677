"""
Page shells.

The front end renders the actual screens; these routes only give the page
gate something to protect and the browser a document to load.
"""

from html import escape

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

pages_router = APIRouter()

PAGES: dict[str, str] = {
    "/": "Dashboard",
    "/checkout": "Checkout",
    "/products": "Products",
    "/categories": "Categories",
    "/customers": "Customers",
    "/transactions": "Transactions",
    "/refunds": "Refunds",
    "/payments": "Payments",
    "/reports": "Reports",
    "/settings": "Settings",
    "/users": "Users",
    "/signup": "Create your business",
    "/login": "Sign in",
}

ERROR_MESSAGES: dict[str, str] = {
    "account_inactive": "Your account has been deactivated. Contact your administrator.",
    "unauthorized": "You do not have access to that page.",
}


def _shell(title: str, body: str = "") -> HTMLResponse:
    return HTMLResponse(
        "<!doctype html><html><head>"
        f"<title>{escape(title)} · POS</title>"
        "</head><body>"
        f'<main id="app" data-page="{escape(title)}">{body}</main>'
        "</body></html>"
    )


def _page(title: str):
    async def render(request: Request):
        error = request.query_params.get("error")
        message = ERROR_MESSAGES.get(error)
        notice = f'<p role="alert">{escape(message)}</p>' if message else ""
        return _shell(title, notice)

    return render


for _path, _title in PAGES.items():
    pages_router.add_api_route(
        _path, _page(_title), methods=["GET"], response_class=HTMLResponse, include_in_schema=False
    )

