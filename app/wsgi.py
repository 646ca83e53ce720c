from app.isoaudit import create_app

app = create_app()
