"""Usecase layer for application services."""
from gateway.usecase.auth_usecase import AuthUsecase
from gateway.usecase.token_usecase import TokenUsecase
from gateway.usecase.quota_usecase import QuotaUsecase
from gateway.usecase.usage_usecase import UsageRecorder, UsageEntry
from gateway.usecase.data_usecase import DataUsecase, MetadataCache

__all__ = [
    "AuthUsecase",
    "TokenUsecase",
    "QuotaUsecase",
    "UsageRecorder",
    "UsageEntry",
    "DataUsecase",
    "MetadataCache",
]
