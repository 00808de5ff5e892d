import os

from raadarenda import create_app

app = create_app()

# Run the application
if __name__ == '__main__':
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", 5000)), debug=app.config["APP_ENV"] != "production")
