"""Tests for JSONSerializer and attribute transforms."""
import datetime

import pytest

from recordstate import (
    Client,
    FieldConfigurationError,
    JSONSerializer,
    MemoryAdapter,
    Record,
    Transform,
    attr,
    belongs_to,
    get_transform,
    has_many,
    register_transform,
    set_current_client,
)


class Company(Record):
    name = attr('string')


class Badge(Record):
    code = attr('string')


class Employee(Record):
    full_name = attr('string')
    salary = attr('number')
    active = attr('boolean')
    hired_on = attr('date')
    settings = attr('json')
    created_by = attr('string', read_only=True)
    company = belongs_to(Company, embedded=False)
    manager = belongs_to('Employee')
    badges = has_many(Badge)


class CamelCaseSerializer(JSONSerializer):
    def key_for_attribute_name(self, name):
        head, *rest = name.split('_')
        return head + ''.join(part.title() for part in rest)


class UpperTransform(Transform):
    def serialize(self, value):
        return None if value is None else value.upper()

    def deserialize(self, value):
        return None if value is None else value.lower()


class TestSerialize:
    """Records become plain dicts."""

    def test_attributes_use_transforms(self, client):
        employee = Employee(
            full_name='Ada',
            salary='1200',
            active=1,
            hired_on=datetime.date(2020, 1, 2),
        )

        payload = employee.serialize()

        assert payload['full_name'] == 'Ada'
        assert payload['salary'] == 1200
        assert payload['active'] is True
        assert payload['hired_on'] == '2020-01-02'

    def test_read_only_fields_skipped(self, client):
        employee = Employee(created_by='system')

        assert 'created_by' not in employee.serialize()

    def test_relationships(self, client):
        boss = Employee(id=1, full_name='Grace')
        employee = Employee(
            company=Company(id=9, name='Acme'),
            manager=boss,
            badges=[Badge(id=3, code='x')],
        )

        payload = employee.serialize()

        assert payload['company'] == 9
        assert payload['manager']['full_name'] == 'Grace'
        assert payload['badges'] == [{'id': 3, 'code': 'x'}]

    def test_custom_payload_keys(self):
        set_current_client(Client(adapter=MemoryAdapter(serializer=CamelCaseSerializer())))

        payload = Employee(full_name='Ada').serialize()

        assert payload['fullName'] == 'Ada'
        assert 'full_name' not in payload


class TestDeserialize:
    """Payloads populate declared fields through the accessors."""

    def test_transforms_applied(self, client):
        employee = Employee.load({
            'salary': '12.5',
            'active': 'yes',
            'hired_on': '2020-01-02T10:30:00Z',
            'settings': '{"theme": "dark"}',
        })

        assert employee.salary == 12.5
        assert employee.active is True
        assert employee.hired_on == datetime.datetime(2020, 1, 2, 10, 30, tzinfo=datetime.timezone.utc)
        assert employee.settings == {'theme': 'dark'}

    def test_read_only_fields_deserialized(self, client):
        employee = Employee.load({'id': 1, 'created_by': 'system'})

        assert employee.created_by == 'system'

    def test_unknown_keys_ignored(self, client):
        employee = Employee.load({'id': 1, 'nickname': 'x'})

        assert employee.id == 1
        assert 'nickname' not in employee._data

    def test_deserialize_on_ready_record_dirties_it(self, client):
        employee = Employee.load({'id': 1, 'full_name': 'Ada'})

        employee.deserialize({'full_name': 'Grace'})

        assert employee.full_name == 'Grace'
        assert employee.is_dirty is True

    def test_has_many_updated_in_place(self, client):
        employee = Employee.load({'id': 1, 'badges': [{'id': 3, 'code': 'x'}]})
        badges = employee.badges

        with employee.suspended_changes():
            employee.deserialize({'badges': [{'id': 4, 'code': 'y'}]})

        assert employee.badges is badges
        assert [badge.code for badge in badges] == ['y']
        badges[0].code = 'z'
        assert employee.is_dirty is True

    def test_existing_instance_kept(self, client):
        company = Company(id=9)
        employee = Employee()

        employee.deserialize({'company': company})

        assert employee.company is company

    def test_custom_payload_keys(self):
        set_current_client(Client(adapter=MemoryAdapter(serializer=CamelCaseSerializer())))

        employee = Employee.load({'id': 1, 'fullName': 'Ada', 'full_name': 'ignored'})

        assert employee.full_name == 'Ada'


class TestTransforms:
    """Named transforms and their registry."""

    def test_register_transform(self, client):
        register_transform('upper', UpperTransform())

        class Code(Record):
            value = attr('upper')

        assert Code(value='abc').serialize()['value'] == 'ABC'
        assert Code.load({'value': 'XYZ'}).value == 'xyz'

    def test_unknown_transform(self):
        with pytest.raises(FieldConfigurationError, match="Unknown attribute transform"):
            get_transform('money')

    @pytest.mark.parametrize("raw, expected", [
        (None, None),
        ('', None),
        ('7', 7),
        ('7.5', 7.5),
        (True, 1),
        (3, 3),
    ])
    def test_number(self, raw, expected):
        assert get_transform('number').deserialize(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ('true', True),
        ('T', True),
        ('1', True),
        ('no', False),
        (0, False),
        (None, None),
    ])
    def test_boolean(self, raw, expected):
        assert get_transform('boolean').deserialize(raw) is expected

    def test_date(self):
        transform = get_transform('date')

        assert transform.deserialize('2021-03-04') == datetime.date(2021, 3, 4)
        assert transform.deserialize(0) == datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
        assert transform.serialize(datetime.datetime(2021, 3, 4, 5, 6)) == '2021-03-04T05:06:00'
        assert transform.serialize(None) is None
