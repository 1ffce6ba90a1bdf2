"""Order submission parsing and plain-text message rendering.

Everything here is a pure function of the submitted form fields; nothing
touches the network. The endpoint in ``webapp`` strings these together and
hands the result to a mail sender.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Mapping

from email_validator import EmailNotValidError, validate_email

DEFAULT_COMPANY_NAME = "N/A"
DEFAULT_ORDER_FORM_LINK = "N/A"
DEFAULT_ORDER_DETAILS = "No order details provided."

DIVIDER = "-" * 74

# Everything FILTER_SANITIZE_URL keeps: ASCII letters, digits and URL punctuation.
_URL_DISALLOWED = re.compile(r"[^A-Za-z0-9$\-_.+!*'(),{}|\\^~\[\]`<>#%\";/?:@&=]")
_LINE_BREAKS = ("<br>", "<br/>", "<br />")


class InvalidEmailError(ValueError):
    pass


@dataclass(frozen=True)
class OrderSubmission:
    raw_customer_email: str
    company_name: str
    order_form_link: str
    order_details: str

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> "OrderSubmission":
        """Normalize the posted form fields.

        Defaults apply only when a key is missing; a key sent with an empty
        value stays empty.
        """
        raw_email = form.get("realemail")
        company = form.get("company_name")
        link = form.get("url_link")
        details = form.get("order_details")
        return cls(
            raw_customer_email=raw_email.strip() if raw_email is not None else "",
            company_name=(
                escape_company_name(company.strip())
                if company is not None
                else DEFAULT_COMPANY_NAME
            ),
            order_form_link=(
                sanitize_url(link.strip()) if link is not None else DEFAULT_ORDER_FORM_LINK
            ),
            order_details=details.strip() if details is not None else DEFAULT_ORDER_DETAILS,
        )


@dataclass(frozen=True)
class OrderEmail:
    recipients: list[str]
    subject: str
    body: str
    headers: dict[str, str]


def escape_company_name(value: str) -> str:
    # Single quotes come out as &#039; to match what existing inboxes already show.
    return html.escape(value, quote=True).replace("&#x27;", "&#039;")


def sanitize_url(value: str) -> str:
    return _URL_DISALLOWED.sub("", value)


def single_line(value: str) -> str:
    # Header values cannot carry line breaks.
    return " ".join(value.splitlines())


def extract_customer_email(raw_value: str) -> str:
    """Return the first semicolon-separated address, trimmed.

    Raises InvalidEmailError when that address is empty or malformed.
    """
    candidate = raw_value.split(";", 1)[0].strip()
    if not candidate:
        raise InvalidEmailError("customer email is missing")
    try:
        validate_email(candidate, check_deliverability=False, allow_smtputf8=False)
    except EmailNotValidError as exc:
        raise InvalidEmailError(str(exc)) from exc
    return candidate


def plain_text_details(order_details: str) -> str:
    text = order_details
    for tag in _LINE_BREAKS:
        text = text.replace(tag, "\n")
    return text


def render_order_body(
    *,
    title: str,
    company_name: str,
    customer_email: str,
    order_form_link: str,
    order_details: str,
) -> str:
    return (
        f"{title}\n\n"
        "A custom order was submitted via the Custom Order Form.\n\n"
        f"Company: {company_name}\n"
        f"Customer Email: {customer_email}\n"
        f"Your order form link is: {order_form_link}\n"
        "Bookmark this link - this order form will be updated regularly with updated "
        "order history, and should help with your reordering.\n\n"
        f"{DIVIDER}\n\n"
        "ORDER DETAILS:\n"
        f"{plain_text_details(order_details)}"
        f"\n\n{DIVIDER}\n"
    )


def build_order_email(
    submission: OrderSubmission,
    customer_email: str,
    *,
    operator_email: str,
    from_email: str,
    from_name: str,
    title: str,
) -> OrderEmail:
    body = render_order_body(
        title=title,
        company_name=submission.company_name,
        customer_email=customer_email,
        order_form_link=submission.order_form_link,
        order_details=submission.order_details,
    )
    headers = {
        "From": f"{from_name} <{from_email}>",
        "Reply-To": customer_email,
        "MIME-Version": "1.0",
        "Content-Type": "text/plain; charset=UTF-8",
        "Content-Transfer-Encoding": "8bit",
    }
    return OrderEmail(
        recipients=[operator_email, customer_email],
        subject=single_line(f"Custom Order from {submission.company_name}"),
        body=body,
        headers=headers,
    )
