from functools import lru_cache
from typing import Iterator

from fastapi import Depends

from busdesk.client.http import make_client
from busdesk.client.schedule_service import ScheduleService
from busdesk.core.config import AppConfig, load_config


@lru_cache
def get_config() -> AppConfig:
    return load_config()


def get_schedule_service(cfg: AppConfig = Depends(get_config)) -> Iterator[ScheduleService]:
    client = make_client(cfg)
    try:
        yield ScheduleService(cfg, client)
    finally:
        client.close()
