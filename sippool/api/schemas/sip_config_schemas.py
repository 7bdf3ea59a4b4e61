# sippool/api/schemas/sip_config_schemas.py
# -*- coding: utf-8 -*-
"""
Schemas for SIP configuration gateway requests and responses.
"""
from marshmallow import Schema, fields, validate, ValidationError, EXCLUDE, pre_load

TRANSPORT_CHOICES = ['UDP', 'TCP', 'WSS']


def _upper_transport(data):
    if isinstance(data, dict) and isinstance(data.get('transport'), str):
        data = dict(data)
        data['transport'] = data['transport'].upper()
    return data


class IceServersField(fields.Dict):
    """WebRTC ICE server block, e.g. {"urls": ["stun:stun.example.org"]}."""

    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs)
        urls = value.get('urls', [])
        if not isinstance(urls, list) or not all(isinstance(url, str) for url in urls):
            raise ValidationError("'urls' must be a list of strings.")
        return value


# Schema for SIP configuration output (Response)
class SipConfigSchema(Schema):
    id = fields.Int(dump_only=True)
    extension = fields.Int(allow_none=True)
    username = fields.Str()
    password = fields.Str()
    domain = fields.Str()
    server = fields.Str()
    port = fields.Int()
    transport = fields.Str()
    ice_servers = fields.Dict(data_key="iceServers")
    enabled = fields.Bool()
    status = fields.Str(dump_only=True)
    assigned_user_id = fields.Int(allow_none=True, data_key="userId")
    assigned_username = fields.Str(allow_none=True, data_key="assignedUsername")
    assigned_email = fields.Str(allow_none=True, data_key="assignedEmail")
    assigned_at = fields.DateTime(allow_none=True, data_key="assignedAt")
    created_at = fields.DateTime(dump_only=True, data_key="createdAt")
    updated_at = fields.DateTime(dump_only=True, data_key="updatedAt")


# Schema for provisioning a record (CLI import)
class CreateSipConfigSchema(Schema):
    extension = fields.Int(allow_none=True, load_default=None, validate=validate.Range(min=1))
    username = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    password = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    domain = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    server = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    port = fields.Int(load_default=5060, validate=validate.Range(min=1, max=65535))
    transport = fields.Str(load_default='WSS', validate=validate.OneOf(TRANSPORT_CHOICES))
    ice_servers = IceServersField(load_default=lambda: {"urls": []}, data_key="iceServers")
    enabled = fields.Bool(load_default=True)

    @pre_load
    def normalize_transport(self, data, **kwargs):
        return _upper_transport(data)


# Schema for admin correction of a record (Input - Partial)
class UpdateSipConfigSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    extension = fields.Int(allow_none=True, validate=validate.Range(min=1))
    username = fields.Str(validate=validate.Length(min=1, max=100))
    password = fields.Str(validate=validate.Length(min=1, max=255))
    domain = fields.Str(validate=validate.Length(min=1, max=255))
    server = fields.Str(validate=validate.Length(min=1, max=255))
    port = fields.Int(validate=validate.Range(min=1, max=65535))
    transport = fields.Str(validate=validate.OneOf(TRANSPORT_CHOICES))
    ice_servers = IceServersField(data_key="iceServers")
    enabled = fields.Bool()

    @pre_load
    def normalize_transport(self, data, **kwargs):
        return _upper_transport(data)


# Schema for assign requests (assign next / assign specific)
class AssignSipConfigSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    user_id = fields.Int(required=True, strict=True, data_key="userId",
                         validate=validate.Range(min=1, error="userId must be a positive integer."))
    username = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=100))
    user_email = fields.Email(allow_none=True, load_default=None, data_key="userEmail")


# Schema for release requests; userId present means self-service release
class ReleaseSipConfigSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    user_id = fields.Int(allow_none=True, load_default=None, strict=True, data_key="userId",
                         validate=validate.Range(min=1, error="userId must be a positive integer."))


# Schema for list query parameters
class SipConfigListQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    page = fields.Int(load_default=1, validate=validate.Range(min=1))
    per_page = fields.Int(load_default=20, validate=validate.Range(min=1, max=200))
    status = fields.Str(load_default=None, allow_none=True,
                        validate=validate.OneOf(['available', 'assigned', 'disabled']))


class RangeInfoSchema(Schema):
    enabled = fields.Bool(required=True)
    start = fields.Int(required=True)
    end = fields.Int(required=True)


# Schema for list pagination response
class SipConfigListSchema(Schema):
    items = fields.List(fields.Nested(SipConfigSchema()), required=True)
    page = fields.Int(required=True)
    perPage = fields.Int(required=True, attribute="per_page")
    total = fields.Int(required=True)
    pages = fields.Int(required=True)
    rangeInfo = fields.Nested(RangeInfoSchema(), attribute="range_info")


# Schema for utilization stats response
class PoolStatsSchema(Schema):
    total = fields.Int(required=True)
    available = fields.Int(required=True)
    assigned = fields.Int(required=True)
    percentage_used = fields.Int(required=True, data_key="percentageUsed")
