import pytest
from datetime import timedelta
from uuid import uuid4
from unittest.mock import patch
from django.core import mail
from django.urls import reverse
from rest_framework import status

from apps.activity.models import Activity, ActivityType
from apps.groups.models import Group, GroupMembership, GroupRole, Invitation, InviteCode
from apps.groups.throttling import ClientAddressRateThrottle


# =============================================================================
# Group CRUD Tests
# =============================================================================

@pytest.mark.django_db
class TestGroupList:
    """Tests for GET /api/groups/"""

    def test_list_my_groups(self, authenticated_client, group_with_member, third_user):
        Group.objects.create(name='Someone Else', owner=third_user)
        url = reverse('groups:group-list')
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['groups']) == 1
        listed = response.data['groups'][0]
        assert listed['name'] == 'Movie Club'
        assert listed['member_count'] == 2
        assert listed['user_role'] == GroupRole.OWNER

    def test_list_unauthenticated(self, api_client):
        response = api_client.get(reverse('groups:group-list'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestGroupSearchApi:
    """Tests for GET /api/groups/search/"""

    def test_search_own_groups(self, other_client, group_with_member, third_user):
        Group.objects.create(name='Movie Buffs', owner=third_user)
        response = other_client.get(reverse('groups:search'), {'q': 'movie'})

        assert response.status_code == status.HTTP_200_OK
        assert [g['id'] for g in response.data['groups']] == [str(group_with_member.id)]
        assert response.data['groups'][0]['member_count'] == 2

    def test_search_without_query(self, authenticated_client, group):
        response = authenticated_client.get(reverse('groups:search'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'groups': []}

    def test_search_unauthenticated(self, api_client):
        response = api_client.get(reverse('groups:search'), {'q': 'movie'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestGroupCreate:
    """Tests for POST /api/groups/"""

    def test_create_group(self, authenticated_client, user, other_user):
        url = reverse('groups:group-list')
        data = {
            'name': 'Movie Club',
            'description': 'Friday films',
            'memberIds': [str(other_user.id), str(uuid4())],
        }
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['success'] is True
        assert len(response.data['inviteCode']) == 6
        assert len(response.data['failedMemberIds']) == 1
        group = Group.objects.get(id=response.data['group']['id'])
        assert group.owner == user
        assert GroupMembership.objects.filter(group=group).count() == 2

    def test_create_group_invalid_name(self, authenticated_client):
        url = reverse('groups:group-list')
        response = authenticated_client.post(url, {'name': 'Bad!'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'name' in response.data['fieldErrors']
        assert not Group.objects.exists()

    def test_create_group_description_too_long(self, authenticated_client):
        url = reverse('groups:group-list')
        response = authenticated_client.post(url, {'name': 'Movie Club', 'description': 'x' * 501}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'description' in response.data['fieldErrors']

    def test_create_group_bad_member_id(self, authenticated_client):
        url = reverse('groups:group-list')
        response = authenticated_client.post(url, {'name': 'Movie Club', 'memberIds': ['nope']}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'memberIds' in response.data['fieldErrors']


@pytest.mark.django_db
class TestGroupDetail:
    """Tests for GET/PATCH/DELETE /api/groups/{id}/"""

    def test_retrieve_with_members(self, other_client, group_with_member, user):
        url = reverse('groups:group-detail', kwargs={'pk': group_with_member.id})
        response = other_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['group']['name'] == 'Movie Club'
        assert response.data['group']['user_role'] == GroupRole.MEMBER
        assert [m['role'] for m in response.data['members']] == [GroupRole.OWNER, GroupRole.MEMBER]
        assert response.data['members'][0]['user']['display_name'] == 'Test User'

    def test_retrieve_non_member(self, other_client, group):
        url = reverse('groups:group-detail', kwargs={'pk': group.id})
        response = other_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_retrieve_missing(self, authenticated_client):
        url = reverse('groups:group-detail', kwargs={'pk': uuid4()})
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.parametrize('suffix', ['', 'invitations/', 'activities/'])
    def test_malformed_group_id_is_404(self, authenticated_client, suffix):
        response = authenticated_client.get(f'/api/groups/{"-" * 36}/{suffix}')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_malformed_group_id_on_write_is_404(self, authenticated_client):
        bad_id = 'abcdef01-2345-6789-abcd-ef012345678-'
        assert len(bad_id) == 36

        assert authenticated_client.patch(f'/api/groups/{bad_id}/', {'name': 'New'}, format='json').status_code == 404
        assert authenticated_client.delete(f'/api/groups/{bad_id}/').status_code == 404
        assert authenticated_client.post(f'/api/groups/{bad_id}/leave/').status_code == 404
        assert authenticated_client.post(f'/api/groups/{bad_id}/invite-code/').status_code == 404

    def test_update_as_owner(self, authenticated_client, group):
        url = reverse('groups:group-detail', kwargs={'pk': group.id})
        response = authenticated_client.patch(url, {'name': 'Film Club'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['group']['name'] == 'Film Club'

    def test_update_as_member(self, other_client, group_with_member):
        url = reverse('groups:group-detail', kwargs={'pk': group_with_member.id})
        response = other_client.patch(url, {'name': 'Hijacked'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_update_invalid(self, authenticated_client, group):
        url = reverse('groups:group-detail', kwargs={'pk': group.id})
        response = authenticated_client.patch(url, {'name': '?'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'name' in response.data['fieldErrors']

    def test_delete_as_owner(self, authenticated_client, group):
        url = reverse('groups:group-detail', kwargs={'pk': group.id})
        response = authenticated_client.delete(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'success': True}
        assert not Group.objects.filter(id=group.id).exists()

    def test_delete_as_member(self, other_client, group_with_member):
        url = reverse('groups:group-detail', kwargs={'pk': group_with_member.id})
        response = other_client.delete(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert Group.objects.filter(id=group_with_member.id).exists()

    def test_delete_missing(self, authenticated_client):
        url = reverse('groups:group-detail', kwargs={'pk': uuid4()})
        response = authenticated_client.delete(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Invitation Tests
# =============================================================================

@pytest.mark.django_db
class TestSendInvitationApi:
    """Tests for POST/GET /api/groups/{id}/invitations/"""

    def test_send_invitation(self, authenticated_client, group, django_capture_on_commit_callbacks):
        url = reverse('groups:group-invitations', kwargs={'pk': group.id})
        with django_capture_on_commit_callbacks(execute=True):
            response = authenticated_client.post(url, {'email': 'friend@example.com'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data == {'success': True}
        assert Invitation.objects.filter(group=group, email='friend@example.com').exists()
        assert len(mail.outbox) == 1

    def test_send_invitation_invalid_email(self, authenticated_client, group):
        url = reverse('groups:group-invitations', kwargs={'pk': group.id})
        response = authenticated_client.post(url, {'email': 'not-an-email'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'email' in response.data['fieldErrors']

    def test_send_invitation_duplicate(self, authenticated_client, group, make_invitation):
        make_invitation(email='friend@example.com')
        url = reverse('groups:group-invitations', kwargs={'pk': group.id})
        response = authenticated_client.post(url, {'email': 'friend@example.com'}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'invitation_pending'

    def test_send_invitation_to_member(self, authenticated_client, group_with_member, other_user):
        url = reverse('groups:group-invitations', kwargs={'pk': group_with_member.id})
        response = authenticated_client.post(url, {'email': other_user.email}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'already_member'

    def test_send_invitation_non_member(self, other_client, group):
        url = reverse('groups:group-invitations', kwargs={'pk': group.id})
        response = other_client.post(url, {'email': 'friend@example.com'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_send_invitation_missing_group(self, authenticated_client):
        url = reverse('groups:group-invitations', kwargs={'pk': uuid4()})
        response = authenticated_client.post(url, {'email': 'friend@example.com'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_email_failure_still_succeeds(self, authenticated_client, group, django_capture_on_commit_callbacks):
        url = reverse('groups:group-invitations', kwargs={'pk': group.id})
        with patch(
            'apps.groups.services.invitation_management.send_invitation_email',
            side_effect=OSError('smtp down')
        ):
            with django_capture_on_commit_callbacks(execute=True):
                response = authenticated_client.post(url, {'email': 'friend@example.com'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert Invitation.objects.filter(group=group).count() == 1

    def test_list_pending(self, authenticated_client, group, make_invitation):
        make_invitation(email='a@example.com')
        make_invitation(email='b@example.com', expires_in=timedelta(days=-1))
        url = reverse('groups:group-invitations', kwargs={'pk': group.id})
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert [i['email'] for i in response.data['invitations']] == ['a@example.com']
        assert 'token_hash' not in response.data['invitations'][0]

    def test_list_pending_non_member(self, other_client, group):
        url = reverse('groups:group-invitations', kwargs={'pk': group.id})
        response = other_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestAcceptInvitationApi:
    """Tests for POST /api/invitations/{id}/accept/"""

    def test_accept(self, third_client, third_user, group, make_invitation):
        invitation, token = make_invitation()
        url = reverse('invitations:accept', kwargs={'invitation_id': invitation.id})
        response = third_client.post(url, {'token': token, 'groupId': str(group.id)}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'success': True, 'groupId': str(group.id)}
        assert GroupMembership.objects.filter(group=group, user=third_user).exists()

    @pytest.mark.parametrize('case,code', [
        ('bad_token', 'invalid_token'),
        ('expired', 'expired'),
        ('accepted', 'already_used'),
        ('wrong_group', 'invitation_not_found'),
    ])
    def test_accept_failures_are_400(self, third_client, user, group, make_invitation, case, code):
        invitation, token = make_invitation(
            expires_in=timedelta(days=-1) if case == 'expired' else timedelta(days=7),
            accepted=(case == 'accepted'),
        )
        group_id = group.id
        if case == 'bad_token':
            token = 'f' * 64
        if case == 'wrong_group':
            group_id = Group.objects.create(name='Other Club', owner=user).id

        url = reverse('invitations:accept', kwargs={'invitation_id': invitation.id})
        response = third_client.post(url, {'token': token, 'groupId': str(group_id)}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == code
        assert 'error' in response.data

    def test_accept_existing_member(self, other_client, group_with_member, make_invitation):
        invitation, token = make_invitation()
        url = reverse('invitations:accept', kwargs={'invitation_id': invitation.id})
        response = other_client.post(url, {'token': token, 'groupId': str(group_with_member.id)}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'already_member'

    def test_accept_budget_is_separate_from_invitation_listing(
        self, authenticated_client, third_client, group, make_invitation
    ):
        invitation, token = make_invitation()
        list_url = reverse('groups:group-invitations', kwargs={'pk': group.id})
        accept_url = reverse('invitations:accept', kwargs={'invitation_id': invitation.id})
        rates = {'join': '30/min', 'invitations': '2/min', 'invitation_accept': '2/min'}

        with patch.object(ClientAddressRateThrottle, 'THROTTLE_RATES', rates):
            listings = [authenticated_client.get(list_url).status_code for _ in range(3)]
            accepted = third_client.post(accept_url, {'token': token, 'groupId': str(group.id)}, format='json')

        assert listings == [200, 200, 429]
        assert accepted.status_code == status.HTTP_200_OK

    def test_accept_is_rate_limited(self, third_client, group, make_invitation):
        invitation, _ = make_invitation()
        url = reverse('invitations:accept', kwargs={'invitation_id': invitation.id})
        rates = {'join': '30/min', 'invitations': '30/min', 'invitation_accept': '2/min'}

        with patch.object(ClientAddressRateThrottle, 'THROTTLE_RATES', rates):
            responses = [
                third_client.post(url, {'token': 'f' * 64, 'groupId': str(group.id)}, format='json')
                for _ in range(3)
            ]

        assert [r.status_code for r in responses] == [400, 400, 429]

    def test_accept_missing_fields(self, third_client, make_invitation):
        invitation, _ = make_invitation()
        url = reverse('invitations:accept', kwargs={'invitation_id': invitation.id})
        response = third_client.post(url, {}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'validation_error'

    def test_accept_unauthenticated(self, api_client, group, make_invitation):
        invitation, token = make_invitation()
        url = reverse('invitations:accept', kwargs={'invitation_id': invitation.id})
        response = api_client.post(url, {'token': token, 'groupId': str(group.id)}, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestResendInvitationApi:
    """Tests for POST /api/invitations/{id}/resend/"""

    def test_resend(self, authenticated_client, make_invitation, django_capture_on_commit_callbacks):
        invitation, old_token = make_invitation()
        url = reverse('invitations:resend', kwargs={'invitation_id': invitation.id})
        with django_capture_on_commit_callbacks(execute=True):
            response = authenticated_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(mail.outbox) == 1
        invitation.refresh_from_db()
        assert old_token not in mail.outbox[0].body

    def test_resend_non_member(self, other_client, make_invitation):
        invitation, _ = make_invitation()
        url = reverse('invitations:resend', kwargs={'invitation_id': invitation.id})
        response = other_client.post(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_resend_missing(self, authenticated_client):
        url = reverse('invitations:resend', kwargs={'invitation_id': uuid4()})
        response = authenticated_client.post(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_resend_accepted(self, authenticated_client, make_invitation):
        invitation, _ = make_invitation(accepted=True)
        url = reverse('invitations:resend', kwargs={'invitation_id': invitation.id})
        response = authenticated_client.post(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'already_used'


# =============================================================================
# Invite Code Tests
# =============================================================================

@pytest.mark.django_db
class TestInviteCodeApi:
    """Tests for POST /api/groups/{id}/invite-code/ and /api/groups/join/"""

    def test_get_invite_code(self, authenticated_client, group, invite_code):
        url = reverse('groups:group-invite-code', kwargs={'pk': group.id})
        response = authenticated_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'code': 'ABC234'}

    def test_invite_code_created_on_demand(self, authenticated_client, group):
        url = reverse('groups:group-invite-code', kwargs={'pk': group.id})
        first = authenticated_client.post(url)
        second = authenticated_client.post(url)

        assert first.data['code'] == second.data['code']
        assert InviteCode.objects.filter(group=group).count() == 1

    def test_invite_code_non_member(self, other_client, group):
        url = reverse('groups:group-invite-code', kwargs={'pk': group.id})
        response = other_client.post(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_join_with_code(self, other_client, other_user, group, invite_code):
        url = reverse('groups:join-with-code')
        response = other_client.post(url, {'code': 'abc 234'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            'success': True,
            'alreadyMember': False,
            'groupId': str(group.id),
            'groupName': 'Movie Club',
        }
        assert GroupMembership.objects.filter(group=group, user=other_user).exists()

    def test_join_already_member(self, authenticated_client, invite_code):
        url = reverse('groups:join-with-code')
        response = authenticated_client.post(url, {'code': 'ABC234'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['alreadyMember'] is True

    @pytest.mark.parametrize('code', ['ZZZ999', 'AB', ''])
    def test_join_bad_code(self, other_client, invite_code, code):
        url = reverse('groups:join-with-code')
        response = other_client.post(url, {'code': code}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data

    def test_join_is_rate_limited(self, other_client, invite_code):
        url = reverse('groups:join-with-code')
        with patch.object(ClientAddressRateThrottle, 'THROTTLE_RATES', {'join': '2/min', 'invitations': '2/min'}):
            responses = [other_client.post(url, {'code': 'ZZZ999'}, format='json') for _ in range(3)]

        assert [r.status_code for r in responses] == [400, 400, 429]


# =============================================================================
# Membership Tests
# =============================================================================

@pytest.mark.django_db
class TestLeaveApi:
    """Tests for POST /api/groups/{id}/leave/"""

    def test_leave(self, other_client, other_user, group_with_member):
        url = reverse('groups:group-leave', kwargs={'pk': group_with_member.id})
        response = other_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert not GroupMembership.objects.filter(group=group_with_member, user=other_user).exists()
        assert Activity.objects.filter(activity_type=ActivityType.MEMBER_LEFT).exists()

    def test_owner_cannot_leave(self, authenticated_client, group):
        url = reverse('groups:group-leave', kwargs={'pk': group.id})
        response = authenticated_client.post(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_non_member_leave(self, other_client, group):
        url = reverse('groups:group-leave', kwargs={'pk': group.id})
        response = other_client.post(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestRemoveMemberApi:
    """Tests for DELETE /api/groups/{id}/members/{user_id}/"""

    def test_owner_removes_member(self, authenticated_client, group_with_member, other_user):
        url = reverse('groups:group-remove-member', kwargs={'pk': group_with_member.id, 'user_id': other_user.id})
        response = authenticated_client.delete(url)

        assert response.status_code == status.HTTP_200_OK
        assert not GroupMembership.objects.filter(group=group_with_member, user=other_user).exists()

    def test_member_cannot_remove(self, other_client, group_with_member, user):
        url = reverse('groups:group-remove-member', kwargs={'pk': group_with_member.id, 'user_id': user.id})
        response = other_client.delete(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_owner_cannot_remove_self(self, authenticated_client, group, user):
        url = reverse('groups:group-remove-member', kwargs={'pk': group.id, 'user_id': user.id})
        response = authenticated_client.delete(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_remove_non_member(self, authenticated_client, group, third_user):
        url = reverse('groups:group-remove-member', kwargs={'pk': group.id, 'user_id': third_user.id})
        response = authenticated_client.delete(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_remove_malformed_user_id(self, authenticated_client, group):
        response = authenticated_client.delete(f'/api/groups/{group.id}/members/{"-" * 36}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Group Activity Feed
# =============================================================================

@pytest.mark.django_db
class TestGroupActivitiesApi:
    """Tests for GET /api/groups/{id}/activities/"""

    def test_group_feed(self, authenticated_client, group, user):
        Activity.objects.create(group=group, user=user, activity_type=ActivityType.GROUP_CREATED)
        url = reverse('groups:group-activities', kwargs={'pk': group.id})
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['hasMore'] is False
        entry = response.data['activities'][0]
        assert entry['message'] == 'Test User created the circle Movie Club'
        assert entry['color'] == '#F59E0B'
        assert entry['group']['name'] == 'Movie Club'

    def test_group_feed_non_member(self, other_client, group):
        url = reverse('groups:group-activities', kwargs={'pk': group.id})
        response = other_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN
