from transconnect.security import create_access_token

PASSWORD = "secret-password"


def token_for(user_id: int) -> str:
    return create_access_token({"sub": str(user_id)})


def auth_headers(user_id: int) -> dict:
    return {"Authorization": f"Bearer {token_for(user_id)}"}


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_json(self, payload):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(payload)
