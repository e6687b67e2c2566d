# uvicorn learnboard.asgi:app
from learnboard.main import create_app

app = create_app()
