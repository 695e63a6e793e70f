from .statistics_service import StatisticsService

__all__ = ['StatisticsService']
