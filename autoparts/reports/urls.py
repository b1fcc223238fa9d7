from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard_stats, name='dashboard-stats'),
    path('reports/daily/', views.daily_report, name='daily-report'),
    path('reports/low-stock/', views.low_stock_report, name='low-stock-report'),
    path('reports/sales-analytics/', views.sales_analytics, name='sales-analytics'),
]
