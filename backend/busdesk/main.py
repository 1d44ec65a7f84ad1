from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from busdesk.api.v1.routes.calendar import router as calendar_router
from busdesk.api.v1.routes.health import router as health_router


app = FastAPI(title="Busdesk Schedule Calendar API")

# The console frontend calls this API directly from the browser.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/v1")
app.include_router(calendar_router)
