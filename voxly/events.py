# lifespan subscribers, called with the FastAPI app (or None outside of it)
subscribers_startup = []
subscribers_shutdown = []
