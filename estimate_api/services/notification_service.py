"""
Team notifications: a summary after each estimate and callback requests.

Dispatch is fire-and-forget. ``dispatch`` never raises, so it can run as a
background task after the visitor already has their answer.
"""
import logging
from typing import Optional

from ..core.errors import InvalidInput
from ..core.metrics import NOTIFICATIONS
from ..core.config import settings
from ..core.utils import format_money
from ..data.base import MailMessage, Mailer, PropertyKind
from ..data.mailer import mailer
from ..schemas import ContactRequest, EstimateResponse, NoticeProperty, Ownership

logger = logging.getLogger(__name__)

KIND_LABELS = {PropertyKind.HOUSE: "Maison", PropertyKind.APARTMENT: "Appartement"}

def _yes_no(value: Optional[bool]) -> str:
    return "Oui" if value else "Non"

def _floor_label(floor) -> str:
    if floor is None:
        return "-"
    return "Rez-de-chaussée" if floor in (-1, 0) else str(floor)

def render_estimation(prop: NoticeProperty, estimate: EstimateResponse,
                      ownership: Optional[Ownership] = None) -> MailMessage:
    details, features = prop.details, prop.features
    lines = [
        "Bonjour La Team,",
        "Une nouvelle estimation vient d'être faite sur la Landing Page, voici les infos :",
        "",
        "Détails du bien :",
        f"- Type : {KIND_LABELS[prop.type]}",
        f"- Adresse : {prop.address}",
        f"- Surface : {prop.living_area:g} m²",
        f"- Pièces : {prop.rooms}",
    ]
    for key, label in (("bathrooms", "Salles de bains"), ("showers", "Douches")):
        if key in details:
            lines.append(f"- {label} : {details[key]}")
    if prop.type == PropertyKind.APARTMENT:
        floor = prop.floor if prop.floor is not None else details.get("floor")
        elevator = prop.has_elevator if prop.has_elevator is not None else features.get("hasElevator")
        lines.append(f"- Étage : {_floor_label(floor)}")
        if "totalFloors" in details:
            lines.append(f"- Nombre total d'étages : {details['totalFloors']}")
        lines.append(f"- Ascenseur : {_yes_no(elevator)}")
        if "parkingSpaces" in features:
            lines.append(f"- Places de parking : {features['parkingSpaces']}")
    year = prop.construction_year or features.get("constructionYear")
    if year:
        lines.append(f"- Année de construction : {year}")
    if "energyRating" in features:
        lines.append(f"- DPE : {features['energyRating']}")
    condition = prop.condition or features.get("condition")
    if condition:
        lines.append(f"- État : {condition}")
    if "quality" in features:
        lines.append(f"- Niveau de qualité : {features['quality']}")

    def money(amount):
        return format_money(amount, settings.DEFAULT_CURRENCY)

    lines += [
        "",
        "Estimation :",
        f"- Prix estimé : {money(estimate.estimated_price)}",
        f"- Fourchette : {money(estimate.price_range.min)} - {money(estimate.price_range.max)}",
        f"- Prix/m² : {money(estimate.average_price_per_sqm)}",
        f"- Ventes comparables : {estimate.comparable_sales}",
        f"- Indice de confiance : {round(estimate.confidence_score * 100)}%",
    ]

    if ownership is not None:
        lines += [
            "",
            "Projet :",
            f"- Propriétaire : {_yes_no(ownership.is_owner)}",
            f"- Échéance : {ownership.selling_timeline or '-'}",
            f"- Souhaite être contacté : {_yes_no(ownership.wants_contact)}",
        ]
        if ownership.wants_contact:
            lines += [
                "",
                "Coordonnées :",
                f"- Nom : {ownership.last_name or '-'}",
                f"- Prénom : {ownership.first_name or '-'}",
                f"- Téléphone : {ownership.phone or '-'}",
            ]

    return MailMessage(
        subject=f"Landing Page - Nouvelle estimation - {prop.address}",
        text="\n".join(lines),
    )

def render_contact(contact: ContactRequest) -> MailMessage:
    if not (contact.first_name and contact.last_name and contact.phone):
        raise InvalidInput("contact details incomplete")
    text = "\n".join([
        "Bonjour La Team,",
        "",
        "Une nouvelle demande de contact a été faite sur la Landing Page :",
        "",
        "Coordonnées du client :",
        f"- Prénom : {contact.first_name}",
        f"- Nom : {contact.last_name}",
        f"- Téléphone : {contact.phone}",
        "",
        "Le client souhaite être recontacté pour une estimation plus précise de son bien.",
    ])
    return MailMessage(
        subject=f"Landing Page - Nouvelle demande de contact - {contact.first_name} {contact.last_name}",
        text=text,
    )

class NotificationService:
    def __init__(self, mail: Optional[Mailer] = None):
        self.mail = mail or mailer()

    async def dispatch(self, kind: str, message: MailMessage) -> bool:
        """Send ``message``; failures are logged and reported as False, never raised."""
        try:
            await self.mail.send(message)
        except Exception:
            NOTIFICATIONS.labels(kind=kind, status="failed").inc()
            logger.exception("%s notification failed", kind)
            return False
        NOTIFICATIONS.labels(kind=kind, status="sent").inc()
        return True

