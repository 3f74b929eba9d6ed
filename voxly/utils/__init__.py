from uuid import uuid4


def generate_uuid4() -> str:
    return str(uuid4())
