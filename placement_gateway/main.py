from placement_gateway.core.app_factory import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("placement_gateway.main:app", host="0.0.0.0", port=8000)
