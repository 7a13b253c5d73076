"""Contact extraction and CRM parameter mapping."""

from .models import ContactRecord, InboundEvent

EMAIL_FIELD = "Email"
PHONE_FIELD = "Phone Number"
COUNTRY_FIELD = "Country"


def get_field_value(event: InboundEvent, field_name: str) -> str:
    """Look up a form field by name, ignoring case.

    Returns the first match, or an empty string if the field is absent.
    """
    wanted = field_name.lower()
    for form_field in event.fields:
        if form_field.name.lower() == wanted:
            return form_field.value
    return ""


def extract_contact(event: InboundEvent) -> ContactRecord | None:
    """Build a ContactRecord from a form submission.

    Returns:
        The contact, or None if the submission carries no email.
    """
    email = get_field_value(event, EMAIL_FIELD).strip()
    if not email:
        return None

    return ContactRecord(
        email=email,
        phone=get_field_value(event, PHONE_FIELD).strip(),
        country=get_field_value(event, COUNTRY_FIELD).strip(),
        visitor_id=event.visitor_id,
        property_url=event.property_url,
    )


def to_crm_params(
    contact: ContactRecord,
    list_id: str = "",
    custom_field_prefix: str = "custom",
) -> dict[str, str]:
    """Map a contact onto the CRM's add-contact parameter names.

    The visitor id and property URL travel as numbered custom fields
    (``custom1``/``custom2`` or ``customfield1``/``customfield2``).
    ``listid`` is only included when a list is configured.
    """
    params = {
        "email": contact.email,
        "phone": contact.phone,
        "country": contact.country,
        f"{custom_field_prefix}1": contact.visitor_id,
        f"{custom_field_prefix}2": contact.property_url,
    }
    if list_id:
        params["listid"] = list_id
    return params
