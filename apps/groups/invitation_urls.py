from django.urls import path
from . import views

app_name = 'invitations'

urlpatterns = [
    path('<uuid:invitation_id>/accept/', views.accept_invitation_view, name='accept'),
    path('<uuid:invitation_id>/resend/', views.resend_invitation_view, name='resend'),
]
