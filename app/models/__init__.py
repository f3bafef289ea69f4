from app.models.receipt import ReceiptModel  # noqa: F401
from app.models.user import RevokedTokenModel, UserModel  # noqa: F401
