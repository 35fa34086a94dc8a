"""
Tests for event and censoring source definitions.
"""

import dataclasses

import pytest
import pandas as pd

import adtte
from adtte import (
    EventSource, CensorSource, var, death_event, lastalv_censor,
    get_tte_source, list_tte_source_objects,
)
from adtte.sources import TTESource


class TestEventSource:
    """Tests for EventSource."""

    def test_create_event_source(self):
        source = EventSource(dataset_name='adsl', date='DTHDT',
                             set_values_to={'EVNTDESC': 'DEATH'})

        assert source.censor == 0
        assert source.is_event
        assert source.set_values_to['EVNTDESC'] == 'DEATH'

    def test_nonzero_censor_rejected(self):
        with pytest.raises(ValueError, match="censor = 0"):
            EventSource(dataset_name='adsl', date='DTHDT', censor=1)

    def test_invalid_dataset_name(self):
        with pytest.raises(ValueError, match="dataset_name"):
            EventSource(dataset_name='', date='DTHDT')

    def test_invalid_date(self):
        with pytest.raises(ValueError, match="date must be"):
            EventSource(dataset_name='adsl', date=3)

    def test_adt_cannot_be_set(self):
        with pytest.raises(ValueError, match="ADT cannot be set"):
            EventSource(dataset_name='adsl', date='DTHDT', set_values_to={'ADT': 1})

    @pytest.mark.parametrize('name', ['STARTDT', 'AVAL', 'CNSR'])
    def test_derived_variables_cannot_be_set(self, name):
        with pytest.raises(ValueError, match=f"{name} cannot be set"):
            EventSource(dataset_name='adsl', date='DTHDT', set_values_to={name: 1})

    def test_base_class_not_constructible(self):
        with pytest.raises(NotImplementedError, match="EventSource or CensorSource"):
            TTESource(dataset_name='adsl', date='DTHDT')

    def test_base_class_not_exported(self):
        assert 'TTESource' not in adtte.__all__

    def test_immutable(self):
        source = EventSource(dataset_name='adsl', date='DTHDT',
                             set_values_to={'EVNTDESC': 'DEATH'})

        with pytest.raises(dataclasses.FrozenInstanceError):
            source.date = 'LSTALVDT'
        with pytest.raises(TypeError):
            source.set_values_to['EVNTDESC'] = 'OTHER'

    def test_set_values_to_copied(self):
        values = {'EVNTDESC': 'DEATH'}
        source = EventSource(dataset_name='adsl', date='DTHDT', set_values_to=values)
        values['EVNTDESC'] = 'CHANGED'

        assert source.set_values_to['EVNTDESC'] == 'DEATH'


class TestCensorSource:
    """Tests for CensorSource."""

    def test_default_censor(self):
        source = CensorSource(dataset_name='adsl', date='LSTALVDT')

        assert source.censor == 1
        assert not source.is_event

    def test_custom_censor(self):
        assert CensorSource(dataset_name='adsl', date='LSTALVDT', censor=3).censor == 3

    @pytest.mark.parametrize('censor', [0, -1, 1.5, True])
    def test_invalid_censor(self, censor):
        with pytest.raises(ValueError, match="Invalid censor"):
            CensorSource(dataset_name='adsl', date='LSTALVDT', censor=censor)


class TestAccessors:
    """Tests for filters and value accessors."""

    @pytest.fixture
    def data(self):
        return pd.DataFrame({
            'USUBJID': ['A', 'B', 'C'],
            'DTHFL': ['Y', None, 'N'],
            'DTHDT': ['2022-01-01', None, None],
        })

    def test_var(self, data):
        values = var('DTHFL')(data)

        assert values.iloc[0] == 'Y'
        assert pd.isna(values.iloc[1])
        assert values.iloc[2] == 'N'

    def test_var_missing_column(self, data):
        with pytest.raises(ValueError, match="AESEQ not found"):
            var('AESEQ')(data)

    def test_filter_with_missing_values(self, data):
        source = EventSource(dataset_name='adsl', date='DTHDT',
                             filter=lambda df: df['DTHFL'].eq('Y').where(df['DTHFL'].notna()))

        records = source.qualifying_records(data)

        assert records['USUBJID'].tolist() == ['A']

    def test_qualifying_records_is_copy(self, data):
        source = EventSource(dataset_name='adsl', date='DTHDT')
        records = source.qualifying_records(data)
        records['DTHFL'] = 'X'

        assert data['DTHFL'].iloc[0] == 'Y'


class TestPresets:
    """Tests for the predefined sources."""

    def test_death_event(self):
        assert death_event.dataset_name == 'adsl'
        assert death_event.date == 'DTHDT'
        assert death_event.censor == 0

    def test_lastalv_censor(self):
        assert lastalv_censor.date == 'LSTALVDT'
        assert lastalv_censor.censor == 1

    def test_get_tte_source(self):
        assert get_tte_source('death_event') is death_event

    def test_get_unknown_source(self):
        with pytest.raises(ValueError, match="Unknown source"):
            get_tte_source('pd_event')

    def test_list_tte_source_objects(self):
        listing = list_tte_source_objects()

        assert len(listing) == 7
        assert {'object', 'type', 'dataset_name', 'filter', 'date', 'censor',
                'set_values_to'} <= set(listing.columns)

        death = listing.set_index('object').loc['death_event']
        assert death['type'] == 'event'
        assert death['filter'] == "DTHFL == 'Y'"
        assert 'EVNTDESC=' in death['set_values_to']

        ae_ser = listing.set_index('object').loc['ae_ser_event']
        assert ae_ser['filter'] == "TRTEMFL == 'Y' & AESER == 'Y'"
        assert 'SRCSEQ=AESEQ' in ae_ser['set_values_to']


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
