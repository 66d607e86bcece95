"""Tests for destination planning and the validation gate."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from photo_importer.grouper import Unit, collect_files, group_files_by_base
from photo_importer.planner import (
    SOURCE_MISSING,
    SOURCE_NOT_REGULAR,
    UNREADABLE_METADATA,
    CopyPlanEntry,
    PlanValidationError,
    ValidationError,
    destination_for,
    plan_copies,
)
from photo_importer.sequences import SequenceKind, SequenceTag


def _units(input_dir):
    return group_files_by_base(collect_files(input_dir))


def _cache(units, metadata_by_key):
    return {
        key: (units[key].representative, metadata)
        for key, metadata in metadata_by_key.items()
    }


def _by_name(plan):
    return {entry.source.name: entry.destination for entry in plan}


class TestDestinationLayout:
    """Test destination path construction."""

    def test_layout_is_tree_year_month_day(self, at):
        dest = destination_for(Path('/out'), 'RAW', at(2024, 1, 5, 10), 'IMG.CR2')
        assert dest == Path('/out/RAW/2024/01/05/IMG.CR2')

    def test_sequence_folder_is_inserted_after_day(self, at):
        dest = destination_for(Path('/out'), 'JPEG', at(2024, 11, 25), 'IMG.JPG', 'IMG_HDR')
        assert dest == Path('/out/JPEG/2024/11/25/IMG_HDR/IMG.JPG')

    def test_destination_is_deterministic(self, at):
        args = (Path('/out'), 'JPEG', at(2023, 7, 1), 'a.jpg', 'a_BURST')
        assert destination_for(*args) == destination_for(*args)


class TestPlanCopies:
    """Test planning of units with metadata, sequences and fallbacks."""

    def test_hdr_sequence_goes_into_its_folder(self, photo_tree, input_dir, output_dir, make_exif):
        for i in (1, 2, 3):
            photo_tree(f'IMG00{i}.JPG')
        units = _units(input_dir)
        cache = _cache(units, {
            f'IMG00{i}': make_exif(date=f'2024:01:05 10:00:0{i}', hdr=i) for i in (1, 2, 3)
        })
        tag = SequenceTag(SequenceKind.HDR, 'IMG001_HDR')
        sequences = {key: tag for key in units}

        plan = plan_copies(units, cache, sequences, output_dir)

        folder = output_dir.absolute() / 'JPEG' / '2024' / '01' / '05' / 'IMG001_HDR'
        assert _by_name(plan) == {
            'IMG001.JPG': folder / 'IMG001.JPG',
            'IMG002.JPG': folder / 'IMG002.JPG',
            'IMG003.JPG': folder / 'IMG003.JPG',
        }

    def test_untagged_unit_lands_in_day_folder(self, photo_tree, input_dir, output_dir, make_exif):
        photo_tree('IMG010.JPG')
        units = _units(input_dir)
        cache = _cache(units, {'IMG010': make_exif(date='2024:01:05 09:00:00', burst=1)})

        plan = plan_copies(units, cache, {}, output_dir)

        assert _by_name(plan) == {
            'IMG010.JPG': output_dir.absolute() / 'JPEG' / '2024' / '01' / '05' / 'IMG010.JPG'
        }

    def test_files_are_split_between_trees(self, photo_tree, input_dir, output_dir, make_exif):
        photo_tree('P1010001.ORF')
        photo_tree('P1010001.JPG')
        photo_tree('P1010001.ORF.xmp')
        photo_tree('P1010001.JPG.pp3')
        photo_tree('P1010001.xmp')
        units = _units(input_dir)
        cache = _cache(units, {'P1010001': make_exif(date='2024:03:09 18:30:00')})

        plan = _by_name(plan_copies(units, cache, {}, output_dir))

        day = Path('2024') / '03' / '09'
        root = output_dir.absolute()
        assert plan['P1010001.ORF'] == root / 'RAW' / day / 'P1010001.ORF'
        assert plan['P1010001.ORF.xmp'] == root / 'RAW' / day / 'P1010001.ORF.xmp'
        assert plan['P1010001.JPG'] == root / 'JPEG' / day / 'P1010001.JPG'
        assert plan['P1010001.JPG.pp3'] == root / 'JPEG' / day / 'P1010001.JPG.pp3'
        # Unqualified sidecar follows the representative, which is the JPEG
        assert plan['P1010001.xmp'] == root / 'JPEG' / day / 'P1010001.xmp'

    def test_unqualified_sidecar_follows_raw_representative(self, photo_tree, input_dir, output_dir, make_exif):
        photo_tree('DSC_0001.NEF')
        photo_tree('DSC_0001.xmp')
        units = _units(input_dir)
        cache = _cache(units, {'DSC_0001': make_exif(date='2024:03:09 18:30:00')})

        plan = _by_name(plan_copies(units, cache, {}, output_dir))

        assert plan['DSC_0001.xmp'].parts[-5] == 'RAW'

    def test_tagged_sidecar_goes_to_raw_tree_by_format_tag(self, photo_tree, input_dir, output_dir):
        source = photo_tree('IMG020.CR2.jpg')
        units = _units(input_dir)
        mtime = datetime.fromtimestamp(source.stat().st_mtime, tz=timezone.utc)

        plan = plan_copies(units, {}, {}, output_dir)

        expected = (output_dir.absolute() / 'RAW' / f'{mtime:%Y}' / f'{mtime:%m}'
                    / f'{mtime:%d}' / 'IMG020.CR2.jpg')
        assert plan == [CopyPlanEntry(source.absolute(), expected)]

    def test_metadata_failure_falls_back_to_mtime(self, photo_tree, input_dir, output_dir, at):
        photo_tree('IMG040.ORF', mtime=at(2023, 7, 1, 12))
        units = _units(input_dir)

        plan = plan_copies(units, {}, {}, output_dir)

        assert _by_name(plan)['IMG040.ORF'] == output_dir.absolute() / 'RAW' / '2023' / '07' / '01' / 'IMG040.ORF'

    def test_undated_metadata_falls_back_to_mtime(self, photo_tree, input_dir, output_dir, make_exif, at):
        photo_tree('IMG041.JPG', mtime=at(2022, 2, 2, 2))
        units = _units(input_dir)
        cache = _cache(units, {'IMG041': make_exif(date='1970:01:01 00:00:00')})

        plan = plan_copies(units, cache, {}, output_dir)

        assert _by_name(plan)['IMG041.JPG'].parts[-4:-1] == ('2022', '02', '02')

    def test_sidecar_only_unit_uses_its_mtime(self, photo_tree, input_dir, output_dir, at):
        photo_tree('notes.txt', mtime=at(2021, 5, 6, 7))
        units = _units(input_dir)

        plan = plan_copies(units, {}, {}, output_dir)

        assert _by_name(plan)['notes.txt'] == output_dir.absolute() / 'JPEG' / '2021' / '05' / '06' / 'notes.txt'

    def test_plan_is_sorted_by_source(self, photo_tree, input_dir, output_dir, at):
        for name in ('c/Z.JPG', 'a/Y.JPG', 'b/X.CR2', 'X.CR2.xmp'):
            photo_tree(name, mtime=at(2024, 1, 5))
        units = _units(input_dir)

        plan = plan_copies(units, {}, {}, output_dir)

        sources = [entry.source for entry in plan]
        assert sources == sorted(sources)
        assert all(entry.destination.is_absolute() for entry in plan)

    def test_empty_input_gives_empty_plan(self, output_dir):
        assert plan_copies({}, {}, {}, output_dir) == []


class TestIncrementalCutoff:
    """Test that units at or before the cutoff are omitted."""

    def test_unit_before_cutoff_is_omitted(self, photo_tree, input_dir, output_dir, make_exif, at):
        photo_tree('OLD.JPG')
        photo_tree('NEW.JPG')
        units = _units(input_dir)
        cache = _cache(units, {
            'OLD': make_exif(date='2024:01:05 11:00:00'),
            'NEW': make_exif(date='2024:01:05 12:00:01'),
        })

        plan = plan_copies(units, cache, {}, output_dir, cutoff=at(2024, 1, 5, 12))

        assert list(_by_name(plan)) == ['NEW.JPG']

    def test_unit_at_cutoff_is_omitted(self, photo_tree, input_dir, output_dir, make_exif, at):
        photo_tree('SAME.JPG')
        units = _units(input_dir)
        cache = _cache(units, {'SAME': make_exif(date='2024:01:05 12:00:00')})

        assert plan_copies(units, cache, {}, output_dir, cutoff=at(2024, 1, 5, 12)) == []

    def test_omitted_unit_is_not_validated(self, photo_tree, input_dir, output_dir, make_exif, at):
        photo_tree('OLD.JPG')
        existing = output_dir / 'JPEG' / '2024' / '01' / '05' / 'OLD.JPG'
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b'already imported')
        units = _units(input_dir)
        cache = _cache(units, {'OLD': make_exif(date='2024:01:05 11:00:00')})

        assert plan_copies(units, cache, {}, output_dir, cutoff=at(2024, 1, 5, 12)) == []


class TestValidationGate:
    """Test that any problem rejects the whole plan."""

    def test_existing_destination_rejects_whole_batch(self, photo_tree, input_dir, output_dir, make_exif):
        metadata = {}
        for i in range(30, 60):
            photo_tree(f'IMG0{i}.CR2')
            metadata[f'IMG0{i}'] = make_exif(date='2024:01:05 08:00:00')
        existing = output_dir / 'RAW' / '2024' / '01' / '05' / 'IMG030.CR2'
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b'old')
        units = _units(input_dir)

        with pytest.raises(PlanValidationError) as excinfo:
            plan_copies(units, _cache(units, metadata), {}, output_dir)

        errors = excinfo.value.errors
        assert len(errors) == 1
        assert errors[0].source_path.name == 'IMG030.CR2'
        assert errors[0].reason.startswith('Destination already exists: ')
        assert str(existing.absolute()) in errors[0].reason
        assert existing.read_bytes() == b'old'

    def test_all_errors_are_reported(self, photo_tree, input_dir, output_dir, at):
        good = photo_tree('GOOD.JPG', mtime=at(2024, 1, 5))
        present = photo_tree('HALF.JPG', mtime=at(2024, 1, 5))
        folder = input_dir / 'HALF.xmp'
        folder.mkdir()
        units = {
            'GOOD': Unit('GOOD', (good,)),
            'HALF': Unit('HALF', (present, input_dir / 'HALF.CR2', folder)),
            'GONE': Unit('GONE', (input_dir / 'GONE.JPG',)),
        }

        with pytest.raises(PlanValidationError) as excinfo:
            plan_copies(units, {}, {}, output_dir)

        reasons = {error.source_path.name: error.reason for error in excinfo.value.errors}
        assert reasons == {
            'GONE.JPG': UNREADABLE_METADATA,
            'HALF.CR2': SOURCE_MISSING,
            'HALF.xmp': SOURCE_NOT_REGULAR,
        }

    def test_same_destination_twice_is_rejected(self, photo_tree, input_dir, output_dir, make_exif):
        first = photo_tree('card1/IMG_0001.JPG')
        second = photo_tree('card2/IMG_0001.JPG')
        units = _units(input_dir)
        cache = _cache(units, {'IMG_0001': make_exif(date='2024:01:05 08:00:00')})

        with pytest.raises(PlanValidationError) as excinfo:
            plan_copies(units, cache, {}, output_dir)

        errors = excinfo.value.errors
        assert [error.source_path for error in errors] == [second]
        assert errors[0].reason.startswith('Destination planned twice: ')
        assert first.exists()

    def test_validation_error_formats_as_path_and_reason(self):
        error = ValidationError(Path('/in/a.jpg'), 'Source is not a regular file')
        assert str(error) == '/in/a.jpg - Source is not a regular file'

    def test_errors_use_absolute_paths_for_relative_input(self, tmp_path, output_dir, monkeypatch):
        monkeypatch.chdir(tmp_path)
        relative = tmp_path / 'input'
        relative.mkdir(exist_ok=True)
        (relative / 'GOOD.JPG').write_bytes(b'photo-data')
        units = {'GOOD': Unit('GOOD', (Path('input/GOOD.CR2'), Path('input/GOOD.JPG')))}

        with pytest.raises(PlanValidationError) as excinfo:
            plan_copies(units, {}, {}, output_dir)

        errors = excinfo.value.errors
        assert [error.source_path for error in errors] == [Path.cwd() / 'input' / 'GOOD.CR2']
        assert errors[0].source_path.is_absolute()
