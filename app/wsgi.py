from app.coaching import create_app

app = create_app()
