import os

from grabit.app import create_app

app = create_app(os.getenv("FLASK_ENV", "development"))
