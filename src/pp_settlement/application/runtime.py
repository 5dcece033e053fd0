"""Process-wide worker instances shared by the lifespan and the admin API."""

from src.pp_event.application.service import EventService
from src.pp_odds.application.sync import OddsSyncService
from src.pp_odds.infrastructure.odds_api import OddsApiClient
from src.pp_settlement.application.jobs import BackgroundJobs
from src.pp_settlement.application.worker import SettlementWorker

event_service = EventService()
odds_provider = OddsApiClient()
odds_sync = OddsSyncService(event_service=event_service, provider=odds_provider)
settlement_worker = SettlementWorker(event_service=event_service, provider=odds_provider)
background_jobs = BackgroundJobs(settlement_worker, odds_sync, event_service)
