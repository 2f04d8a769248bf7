from sqlalchemy.orm import Session

from expense_tracker.models.log import Log


def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None):
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    db.add(entry)
    db.commit()


def client_ip(request):
    if request is None or request.client is None:
        return None
    return request.client.host
