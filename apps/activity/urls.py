from django.urls import path
from . import views

app_name = 'activity'

urlpatterns = [
    path('', views.user_activities, name='user-activities'),
]
