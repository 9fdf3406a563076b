#!/usr/bin/env python3
"""
Tests for the archive restructure: alias resolution, merge statistics and
the produced tree.
"""

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import write_svg
from restructure import (AliasResolver, FileWalk, MissingSourceRoot, PipelineConfig,
                         SourceLayout, TreeMerger, main, matches_size, newest_dir,
                         _copy_exclusive, restructure)


def tree_files(root: Path):
    return sorted(p.relative_to(root).as_posix() for p in root.rglob('*') if p.is_file())


def make_config(tmp_path, source, **options):
    options.setdefault('dest', str(tmp_path / 'aws-icons'))
    options.setdefault('concurrency', 4)
    return PipelineConfig(source=str(source), **options)


def empty_layout(root: Path) -> Path:
    """Create the four archive roots with nothing in them."""
    for name in ('Architecture-Service-Icons_07312024', 'Resource-Icons_07312024',
                 'Architecture-Group-Icons_07312024', 'Category-Icons_07312024'):
        (root / name).mkdir(parents=True)
    return root


class TestAliasResolver:

    def test_exact_slug_match(self):
        resolver = AliasResolver(['Arch_Compute', 'Arch_Storage'], ['Res_Compute', 'Res_Storage'])
        assert resolver.resolve('compute') == 'Res_Compute'
        assert resolver.resolve('storage') == 'Res_Storage'
        assert resolver.inferred == {}

    def test_substring_inference(self):
        resolver = AliasResolver(['Arch_Containers', 'Arch_Business-Applications'],
                                 ['Res_Containers-Services', 'Res_Applications', 'Res_Business-Applications-Suite'])
        # 'applications' sorts before 'businessapplicationssuite', both qualify
        assert resolver.inferred == {
            'businessapplications': 'applications',
            'containers': 'containersservices',
        }
        assert resolver.resolve('containers') == 'Res_Containers-Services'

    def test_first_match_is_lexicographic(self):
        resolver = AliasResolver(['Arch_Analytics'], ['Res_Zeta-Analytics', 'Res_Analytics-Lake'])
        assert resolver.resolve('analytics') == 'Res_Analytics-Lake'

    def test_manual_alias(self):
        resolver = AliasResolver(['Arch_App-Integration', 'Arch_IoT'],
                                 ['Res_Application-Integration', 'Res_Internet-of-Things'])
        assert resolver.resolve('appintegration') == 'Res_Application-Integration'
        assert resolver.resolve('iot') == 'Res_Internet-of-Things'

    def test_manual_alias_beats_inferred(self):
        arch = ['Arch_Dev-Tools']
        res = ['Res_Dev-Tools-Legacy', 'Res_Developer-Tools']
        inferred_only = AliasResolver(arch, res)
        assert inferred_only.inferred == {'devtools': 'devtoolslegacy'}

        resolver = AliasResolver(arch, res, manual_aliases={'devtools': 'developertools'})
        assert resolver.inferred['devtools'] == 'devtoolslegacy'
        assert resolver.aliases['devtools'] == 'developertools'
        assert resolver.resolve('devtools') == 'Res_Developer-Tools'

    def test_manual_alias_overrides_identical_slug(self):
        resolver = AliasResolver(['Arch_Compute'], ['Res_Compute', 'Res_Compute-Classic'],
                                 manual_aliases={'compute': 'computeclassic'})
        assert resolver.resolve('compute') == 'Res_Compute-Classic'

    def test_unresolved_is_none(self):
        resolver = AliasResolver(['Arch_Quantum-Technologies'], ['Res_Compute'])
        assert resolver.resolve('quantumtechnologies') is None

    def test_aliases_are_read_only(self):
        resolver = AliasResolver(['Arch_IoT'], ['Res_Internet-of-Things'])
        with pytest.raises(TypeError):
            resolver.aliases['iot'] = 'compute'

    def test_unmarked_directories_ignored(self):
        resolver = AliasResolver(['Arch_Compute', 'README', 'Compute'], ['Res_Compute', '.DS_Store'])
        assert resolver.arch_categories == {'compute': 'Arch_Compute'}
        assert resolver.resource_categories == {'compute': 'Res_Compute'}


def test_newest_dir_prefers_latest_release(tmp_path):
    (tmp_path / 'Resource-Icons_01312023').mkdir()
    (tmp_path / 'Resource-Icons_07312024').mkdir()
    (tmp_path / 'Resource-Icons.txt').write_text('not a directory')
    assert newest_dir(tmp_path, 'Resource-Icons').name == 'Resource-Icons_07312024'


def test_newest_dir_missing(tmp_path):
    with pytest.raises(MissingSourceRoot):
        newest_dir(tmp_path, 'Resource-Icons')


def test_matches_size(tmp_path):
    root = tmp_path
    assert matches_size(root / 'Arch_Compute' / '48' / 'Arch_EC2.svg', root, '48', ('svg',))
    assert matches_size(root / 'Res_Compute' / 'Res_EC2_48.SVG', root, '48', ('svg',))
    assert not matches_size(root / 'Res_Compute' / 'Res_EC2_32.svg', root, '48', ('svg',))
    assert not matches_size(root / 'Res_Compute' / 'Res_EC2_48.png', root, '48', ('svg',))
    assert matches_size(root / 'Res_Compute' / 'Res_EC2_48.png', root, '48', ('svg', 'png'))


def test_file_walk_is_lazy_sorted_and_restartable(tmp_path):
    write_svg(tmp_path / 'b' / 'two.svg')
    write_svg(tmp_path / 'a' / 'one.svg')
    (tmp_path / 'a' / 'notes.txt').write_text('x')
    walk = FileWalk(tmp_path, ('svg',))
    first = [p.relative_to(tmp_path).as_posix() for p in walk]
    second = [p.relative_to(tmp_path).as_posix() for p in walk]
    assert first == ['a/one.svg', 'b/two.svg']
    assert first == second
    assert list(FileWalk(tmp_path / 'missing')) == []


def test_restructure_tree(tmp_path, raw_archive):
    config = make_config(tmp_path, raw_archive)
    result = restructure(config)
    dest = Path(config.dest)

    assert tree_files(dest) == [
        'Arch_App-Integration/Arch_Amazon-EventBridge_48.svg',
        'Arch_App-Integration/Res_Amazon-EventBridge_Rule_48.svg',
        'Arch_Compute/Arch_AWS-Lambda_48.svg',
        'Arch_Compute/Arch_Amazon-EC2_48.svg',
        'Arch_Compute/Res_Amazon-EC2_Instance_48.svg',
        'Arch_Quantum-Technologies/Arch_Amazon-Braket_48.svg',
        'Arch_Storage/Arch_Amazon-Simple-Storage-Service_48.svg',
        'Arch_Storage/Res_Amazon-Simple-Storage-Service_Bucket_48.svg',
        'Architecture-Group/AWS-Cloud-logo_32.svg',
        'Architecture-Group/Region_32.svg',
        'Categories/Arch-Category_Compute_48.svg',
        'Categories/Arch-Category_Storage_48.svg',
        'General-Icons-Dark/Arch_Client_Dark.svg',
        'General-Icons-Dark/Res_Users_48_Dark.svg',
        'General-Icons-Light/Arch_Client_Light.svg',
        'General-Icons-Light/Res_Users_48_Light.svg',
        'checksum.txt',
    ]
    assert result.copied == 16
    assert result.skipped == 0
    assert result.merged == 3
    assert result.arch_only == 1
    assert result.unmatched == ['Arch_Quantum-Technologies']
    assert (result.general_light, result.general_dark) == (2, 2)
    assert (dest / 'checksum.txt').read_text() == 'abc123\n'


def test_restructure_is_deterministic(tmp_path, raw_archive):
    first = restructure(make_config(tmp_path, raw_archive, dest=str(tmp_path / 'one')))
    second = restructure(make_config(tmp_path, raw_archive, dest=str(tmp_path / 'two'), concurrency=1))
    assert tree_files(tmp_path / 'one') == tree_files(tmp_path / 'two')
    assert first.copied == second.copied


def test_rerun_skips_existing_copies(tmp_path, raw_archive):
    config = make_config(tmp_path, raw_archive)
    restructure(config)
    before = tree_files(Path(config.dest))

    result = restructure(config)
    assert tree_files(Path(config.dest)) == before
    # Only the verbatim group copies are written again
    assert result.copied == 2
    assert result.skipped == 14


def test_dry_run_writes_nothing_and_counts_the_same(tmp_path, raw_archive):
    dry = restructure(make_config(tmp_path, raw_archive, dry_run=True))
    assert not (tmp_path / 'aws-icons').exists()

    live = restructure(make_config(tmp_path, raw_archive))
    assert (dry.copied, dry.skipped, dry.merged, dry.arch_only, dry.unmatched) == \
        (live.copied, live.skipped, live.merged, live.arch_only, live.unmatched)


def test_colliding_names_are_skipped_not_fatal(tmp_path):
    source = empty_layout(tmp_path / 'raw')
    write_svg(source / 'Architecture-Service-Icons_07312024' / 'Arch_Compute' / '48' / 'EC2_48.svg', 'arch')
    write_svg(source / 'Resource-Icons_07312024' / 'Res_Compute' / 'EC2_48.svg', 'res')

    config = make_config(tmp_path, source)
    result = restructure(config)
    assert result.copied == 1
    assert result.skipped == 1
    assert result.merged == 1
    copied = Path(config.dest) / 'Arch_Compute' / 'EC2_48.svg'
    assert '<title>arch</title>' in copied.read_text()


def test_failed_copy_is_skipped_and_siblings_finish(tmp_path, raw_archive, capsys):
    def copy_or_fail(src, dst):
        if dst.name == 'Arch_AWS-Lambda_48.svg':
            raise PermissionError("read-only")
        _copy_exclusive(src, dst)

    config = make_config(tmp_path, raw_archive)
    with patch('restructure._copy_exclusive', side_effect=copy_or_fail):
        result = restructure(config)

    assert result.copied == 15
    assert result.skipped == 1
    files = tree_files(Path(config.dest))
    assert 'Arch_Compute/Arch_Amazon-EC2_48.svg' in files
    assert 'Arch_Compute/Arch_AWS-Lambda_48.svg' not in files
    assert 'Could not copy' in capsys.readouterr().err


def test_failed_group_copy_is_skipped(tmp_path, raw_archive, capsys):
    config = make_config(tmp_path, raw_archive)
    (Path(config.dest) / 'Architecture-Group' / 'Region_32.svg').mkdir(parents=True)

    result = restructure(config)

    assert result.copied == 15
    assert result.skipped == 1
    files = tree_files(Path(config.dest))
    assert 'Architecture-Group/AWS-Cloud-logo_32.svg' in files
    assert 'Categories/Arch-Category_Compute_48.svg' in files
    assert 'checksum.txt' in files
    assert 'Region_32.svg' in capsys.readouterr().err


def test_arch_only_category_still_populated(tmp_path):
    source = empty_layout(tmp_path / 'raw')
    write_svg(source / 'Architecture-Service-Icons_07312024' / 'Arch_Blockchain' / '48' / 'Arch_Amazon-Managed-Blockchain_48.svg')
    write_svg(source / 'Resource-Icons_07312024' / 'Res_Compute' / 'Res_Amazon-EC2_48.svg')

    config = make_config(tmp_path, source)
    result = restructure(config)
    assert result.unmatched == ['Arch_Blockchain']
    assert result.arch_only == 1
    assert result.merged == 0
    assert tree_files(Path(config.dest) / 'Arch_Blockchain') == ['Arch_Amazon-Managed-Blockchain_48.svg']


def test_formats_and_size_filter(tmp_path, raw_archive):
    config = make_config(tmp_path, raw_archive, size='32', formats=['svg', 'png'])
    restructure(config)
    dest = Path(config.dest)
    assert tree_files(dest / 'Arch_Compute') == [
        'Arch_Amazon-EC2_32.svg',
        'Res_Amazon-EC2_Instance_32.svg',
    ]
    assert tree_files(dest / 'Categories') == ['Arch-Category_Compute_32.svg']


def test_categories_first_seen_wins(tmp_path):
    source = empty_layout(tmp_path / 'raw')
    cats = source / 'Category-Icons_07312024'
    write_svg(cats / 'A' / 'Arch-Category_Compute_48.svg', 'first')
    write_svg(cats / 'B' / 'Arch-Category_Compute_48.svg', 'second')

    config = make_config(tmp_path, source)
    result = restructure(config)
    icon = Path(config.dest) / 'Categories' / 'Arch-Category_Compute_48.svg'
    assert '<title>first</title>' in icon.read_text()
    assert result.copied == 1
    assert result.skipped == 0


def test_missing_taxonomy_root_aborts_before_writes(tmp_path):
    source = tmp_path / 'raw'
    (source / 'Architecture-Service-Icons_07312024').mkdir(parents=True)
    config = make_config(tmp_path, source)
    with pytest.raises(MissingSourceRoot):
        restructure(config)
    assert not (tmp_path / 'aws-icons').exists()


def test_copy_pool_counts_every_job_once(tmp_path):
    source = empty_layout(tmp_path / 'raw')
    for i in range(40):
        write_svg(source / 'Architecture-Service-Icons_07312024' / 'Arch_Compute' / '48' / f'Icon{i:02d}_48.svg')
    config = make_config(tmp_path, source, concurrency=8)
    layout = SourceLayout(config.source)
    resolver = AliasResolver.from_layout(layout)
    result = asyncio.run(TreeMerger(config, layout, resolver).run())
    assert result.copied == 40
    assert result.skipped == 0
    assert len(tree_files(Path(config.dest) / 'Arch_Compute')) == 40


def test_main_reports_unmatched(tmp_path, raw_archive, capsys):
    dest = tmp_path / 'out'
    code = main(['--source', str(raw_archive), '--dest', str(dest), '--concurrency', '2'])
    assert code == 0
    output = capsys.readouterr().out
    assert 'AWS-Icon restructure complete' in output
    assert 'Merged categories : 3' in output
    assert 'Arch_Quantum-Technologies' in output


def test_main_allow_unmatched_hides_report(tmp_path, raw_archive, capsys):
    code = main(['-s', str(raw_archive), '-d', str(tmp_path / 'out'), '--allow-unmatched', '--dry-run'])
    assert code == 0
    output = capsys.readouterr().out
    assert 'DRY-RUN' in output
    assert 'Arch_Quantum-Technologies' not in output
    assert not (tmp_path / 'out').exists()


def test_main_missing_source(tmp_path, capsys):
    code = main(['--source', str(tmp_path / 'nowhere'), '--dest', str(tmp_path / 'out')])
    assert code == 1
    assert 'Source directory not found' in capsys.readouterr().err


def test_main_rejects_bad_concurrency(tmp_path, raw_archive, capsys):
    code = main(['--source', str(raw_archive), '--dest', str(tmp_path / 'out'), '--concurrency', '0'])
    assert code == 1
    assert 'Concurrency' in capsys.readouterr().err


def test_main_remove_source(tmp_path, raw_archive):
    code = main(['--source', str(raw_archive), '--dest', str(tmp_path / 'out'), '--remove-source'])
    assert code == 0
    assert not raw_archive.exists()
    assert (tmp_path / 'out' / 'checksum.txt').is_file()
