from app.console import create_app

app = create_app()
