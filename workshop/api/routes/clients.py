import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from workshop.core.dependencies import get_db
from workshop.core.errors import NotFound
from workshop.models.client import Client
from workshop.schemas.client import ClientCreate, ClientResponse
from workshop.schemas.maintenance import MaintenanceResponse
from workshop.services.audit_service import log_action


router = APIRouter(prefix="/clients", tags=["Clients"])


def _get_client_or_404(db: Session, client_id: str) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFound("Client", client_id)
    return client


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ClientResponse)
def create_client(client: ClientCreate, db: Session = Depends(get_db)):
    new_client = Client(id=f"client_{uuid.uuid4().hex}", **client.model_dump())
    db.add(new_client)

    log_action(
        db=db,
        action="CREATE_CLIENT",
        entity_type="Client",
        entity_id=new_client.id,
        details=f"Client '{new_client.name}' created",
    )
    db.commit()
    db.refresh(new_client)

    return new_client


@router.get("", response_model=list[ClientResponse])
def get_clients(db: Session = Depends(get_db)):
    return db.query(Client).order_by(Client.name.asc()).all()


@router.get("/{client_id}")
def get_client(client_id: str, db: Session = Depends(get_db)):
    client = _get_client_or_404(db, client_id)

    return {
        **ClientResponse.model_validate(client).model_dump(mode="json"),
        "maintenances": [
            MaintenanceResponse.from_order(order).model_dump(mode="json")
            for order in client.maintenances
        ],
    }


@router.put("/{client_id}")
def update_client(client_id: str, payload: ClientCreate, db: Session = Depends(get_db)):
    client = _get_client_or_404(db, client_id)

    client.name = payload.name
    client.phone = payload.phone
    client.email = payload.email

    log_action(
        db=db,
        action="UPDATE_CLIENT",
        entity_type="Client",
        entity_id=client.id,
        details=f"Client '{client.name}' updated",
    )
    db.commit()

    return {"success": True}
