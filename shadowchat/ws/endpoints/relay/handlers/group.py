"""Group room handlers."""

from typing import Any, Dict

from .base import BaseMessageHandler
from ..models import (
    CreateGroupEnvelope,
    Group,
    GroupDecisionEnvelope,
    GroupEnvelope,
    GroupMessageEnvelope,
    MessageType,
)
from ..utils import GroupNotFoundError, PermissionDeniedError, new_message_id, now_ms
from shadowchat.config import GroupJoinPolicy


class _GroupHandler(BaseMessageHandler):
    """Shared replies for group handlers."""

    async def _send_failed(self, connection, group_id: str, reason: str) -> None:
        await connection.send(
            self._build_envelope(MessageType.GROUP_FAILED, groupId=group_id, reason=reason)
        )

    def _joined_envelope(self, group: Group) -> Dict[str, Any]:
        return self._build_envelope(
            MessageType.GROUP_JOINED,
            groupId=group.group_id,
            groupName=group.name,
            ownerId=group.owner_id,
            members=list(group.members),
        )

    async def _announce_member(self, group: Group, user_id: str) -> None:
        """Tell ``user_id`` it is in, and everyone else that it joined."""
        await self.manager.send_to_user(user_id, self._joined_envelope(group))
        await self.manager.broadcast_to_group(
            group,
            self._build_envelope(
                MessageType.GROUP_USER_JOINED,
                groupId=group.group_id,
                userId=user_id,
                userName=self.manager.display_name_of(user_id),
                memberCount=len(group.members),
            ),
            exclude=user_id,
        )


class CreateGroupHandler(_GroupHandler):
    model = CreateGroupEnvelope

    async def handle(self, connection, envelope: CreateGroupEnvelope) -> None:
        sender = self._require_sender(connection, envelope.fromId)
        group = self.manager.sessions.create_group(sender, envelope.groupName)
        await connection.send(
            self._build_envelope(
                MessageType.GROUP_CREATED, groupId=group.group_id, groupName=group.name
            )
        )
        self.logger.success(f"Group created: {group.group_id}")


class JoinGroupHandler(_GroupHandler):
    """Joins a group under the deployment's join policy.

    ``open``: the caller becomes a member at once.
    ``approval``: the owner is asked and membership waits for ``approve-join``.
    """

    model = GroupEnvelope

    async def handle(self, connection, envelope: GroupEnvelope) -> None:
        sender = self._require_sender(connection, envelope.fromId)
        group = self.manager.sessions.get_group(envelope.groupId)
        if group is None:
            await self._send_failed(connection, envelope.groupId, "Group not found")
            return

        if group.is_member(sender):
            await connection.send(self._joined_envelope(group))
            return

        if self.manager.settings.group_join_policy == GroupJoinPolicy.APPROVAL:
            await self._request_approval(connection, group.group_id, sender)
            return

        group, added = self.manager.sessions.join_directly(group.group_id, sender)
        if added:
            await self._announce_member(group, sender)

    async def _request_approval(self, connection, group_id: str, sender: str) -> None:
        group, queued = self.manager.sessions.request_join(group_id, sender)
        if queued:
            await self.manager.send_to_user(
                group.owner_id,
                self._build_envelope(
                    MessageType.GROUP_JOIN_REQUEST,
                    groupId=group.group_id,
                    userId=sender,
                    userName=self.manager.display_name_of(sender),
                ),
            )
        await connection.send(
            self._build_envelope(MessageType.GROUP_JOIN_PENDING, groupId=group.group_id)
        )


class GroupDecisionHandler(_GroupHandler):
    """Owner-only ``approve-join`` / ``reject-join``."""

    model = GroupDecisionEnvelope

    def __init__(self, connection_manager, approve: bool):
        super().__init__(connection_manager)
        self.approve = approve

    async def handle(self, connection, envelope: GroupDecisionEnvelope) -> None:
        owner = self._require_sender(connection, envelope.fromId)
        try:
            if self.approve:
                group = self.manager.sessions.approve_join(
                    envelope.groupId, owner, envelope.userId
                )
            else:
                group = self.manager.sessions.reject_join(
                    envelope.groupId, owner, envelope.userId
                )
        except (GroupNotFoundError, PermissionDeniedError) as e:
            await self._send_failed(connection, envelope.groupId, e.message)
            return

        if self.approve:
            await self._announce_member(group, envelope.userId)
        else:
            await self.manager.send_to_user(
                envelope.userId,
                self._build_envelope(
                    MessageType.GROUP_JOIN_REJECTED, groupId=group.group_id
                ),
            )


class LeaveGroupHandler(_GroupHandler):
    model = GroupEnvelope

    async def handle(self, connection, envelope: GroupEnvelope) -> None:
        sender = self._require_sender(connection, envelope.fromId)
        group = self.manager.sessions.get_group(envelope.groupId)
        if group is None or not group.is_member(sender):
            await self._send_failed(connection, envelope.groupId, "Not a member")
            return

        group, dissolved = self.manager.sessions.leave_group(group.group_id, sender)
        notice = self._build_envelope(
            MessageType.GROUP_USER_LEFT,
            groupId=group.group_id,
            userId=sender,
            ownerId=None if dissolved else group.owner_id,
            memberCount=len(group.members),
        )
        await connection.send(notice)
        if not dissolved:
            await self.manager.broadcast_to_group(group, notice)
        else:
            self.logger.info(f"Group dissolved: {group.group_id}")


class GroupMessageHandler(_GroupHandler):
    """Fans a message out to every other member of the group."""

    model = GroupMessageEnvelope

    async def handle(self, connection, envelope: GroupMessageEnvelope) -> None:
        sender = self._require_sender(connection, envelope.fromId)
        group = self.manager.sessions.get_group(envelope.groupId)
        if group is None or not group.is_member(sender):
            self.logger.debug(f"Group message from {sender} to {envelope.groupId!r} dropped")
            return

        payload = self._build_envelope(
            MessageType.GROUP_MESSAGE,
            id=new_message_id(),
            groupId=group.group_id,
            **{"from": sender},
            fromName=self.manager.display_name_of(sender),
            text=envelope.text,
            timestamp=now_ms(),
        )
        if envelope.id is not None:
            payload["clientId"] = envelope.id
        await self.manager.broadcast_to_group(group, payload, exclude=sender)
