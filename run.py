from kars_app import create_app

app = create_app()

if __name__ == '__main__':
    # HOST / PORT / DEBUG come from FLASK_HOST, FLASK_PORT, FLASK_DEBUG
    app.run(
        host=app.config.get('HOST', '127.0.0.1'),
        port=app.config.get('PORT', 5000),
        debug=app.config.get('DEBUG', False),
    )
