from propertyhub import create_app

# Worker entry point: celery -A celery_app:celery worker
flask_app = create_app()
celery = flask_app.extensions["celery"]
