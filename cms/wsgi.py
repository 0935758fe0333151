"""
WSGI Entry Point for CMS Service.

    gunicorn -w 4 -b 0.0.0.0:5002 cms.wsgi:application
"""

from cms.app import create_app

application = create_app()
app = application

if __name__ == "__main__":
    application.run()
