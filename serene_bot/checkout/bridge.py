"""
Hosted checkout page — the "page" the Razorpay modal runs on.

The bot sends the user a link to GET /checkout/{token}; the page loads the
cached provider script, opens the modal with the registered options and posts
the outcome back:
  handler(response)  → POST /checkout/{token}/success
  modal.ondismiss()  → POST /checkout/{token}/dismiss
"""

import html
import json
import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse, Response

from serene_bot.checkout.provider import RazorpayResponse
from serene_bot.checkout.razorpay import RazorpayCheckout, get_checkout
from serene_bot.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{title}</title>
  <script src="/checkout/sdk.js"></script>
</head>
<body style="font-family: sans-serif; text-align: center; padding-top: 3rem;">
  <p id="status">Opening secure checkout...</p>
  <script>
    var options = {options};
    var base = "/checkout/{token}";
    function report(path, body) {{
      return fetch(base + path, {{
        method: "POST",
        headers: {{"Content-Type": "application/json"}},
        body: JSON.stringify(body || {{}})
      }});
    }}
    options.handler = function (response) {{
      report("/success", response).then(function () {{
        document.getElementById("status").innerText = "Payment received. You can return to Telegram.";
      }});
    }};
    options.modal = {{
      ondismiss: function () {{
        report("/dismiss").then(function () {{
          document.getElementById("status").innerText = "Payment cancelled. You can return to Telegram.";
        }});
      }}
    }};
    new Razorpay(options).open();
  </script>
</body>
</html>
"""


def _embed(payload: dict) -> str:
    # Keep the JSON inert inside a <script> block
    return json.dumps(payload).replace("</", "<\\/")


@router.get("/checkout/sdk.js")
async def checkout_script(checkout: RazorpayCheckout = Depends(get_checkout)):
    if not checkout.is_loaded:
        raise HTTPException(status_code=503, detail=checkout.error or "Razorpay SDK not loaded yet")
    return Response(content=checkout.script, media_type="application/javascript")


@router.get("/checkout/{token}", response_class=HTMLResponse)
async def checkout_page(token: str, checkout: RazorpayCheckout = Depends(get_checkout)):
    options = checkout.options_for(token)
    if options is None:
        raise HTTPException(status_code=404, detail="Checkout not found or already completed")
    return HTMLResponse(PAGE_TEMPLATE.format(
        title=html.escape(options.name or settings.BRAND_NAME),
        options=_embed(options.widget_payload()),
        token=token,
    ))


@router.post("/checkout/{token}/success")
async def checkout_success(
    token: str,
    body: RazorpayResponse,
    checkout: RazorpayCheckout = Depends(get_checkout),
):
    if checkout.options_for(token) is None:
        raise HTTPException(status_code=404, detail="Checkout not found or already completed")
    if not checkout.complete(token, body):
        raise HTTPException(status_code=409, detail="Order does not match this checkout")
    logger.info("Checkout %s completed (payment %s)", token, body.razorpay_payment_id)
    return {"status": "ok"}


@router.post("/checkout/{token}/dismiss")
async def checkout_dismiss(token: str, checkout: RazorpayCheckout = Depends(get_checkout)):
    if not checkout.dismiss(token):
        raise HTTPException(status_code=404, detail="Checkout not found or already completed")
    return {"status": "dismissed"}


@router.get("/health")
async def health_check(checkout: RazorpayCheckout = Depends(get_checkout)):
    return {
        "status": "healthy",
        "checkout_loaded": checkout.is_loaded,
        "checkout_error": checkout.error,
    }


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Make sure the provider script is cached before serving pages."""
        await get_checkout().load()
        yield

    app = FastAPI(
        title=f"{settings.BRAND_NAME} Checkout",
        description="Hosted Razorpay checkout page for the Telegram bot",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app
