from downloader_lib.archive import verify_archive


def test_unsafe_member_path_deletes_archive(tmp_path, make_zip, capsys):
    archive = make_zip(tmp_path / 'roms' / 'evil.zip', {'ok.bin': b'fine', '../escape.bin': b'bad'})

    assert verify_archive(archive) is False
    assert not archive.exists()
    assert 'Error reading zip file' in capsys.readouterr().out


def test_valid_archive_is_kept(tmp_path, make_zip):
    archive = make_zip(tmp_path / 'good.zip', {'a.bin': b'a', 'dir/b.bin': b'b'})
    assert verify_archive(archive) is True
    assert archive.exists()


def test_truncated_archive_is_deleted(tmp_path, make_zip):
    archive = make_zip(tmp_path / 'partial.zip', {'a.bin': b'a' * 4096})
    data = archive.read_bytes()
    # Chop off the central directory, as an interrupted download would
    archive.write_bytes(data[:len(data) // 2])

    assert verify_archive(archive) is False
    assert not archive.exists()


def test_non_archive_files_are_untouched(tmp_path):
    rom = tmp_path / 'bios.bin'
    rom.write_bytes(b'../not a zip at all')
    assert verify_archive(rom) is True
    assert rom.read_bytes() == b'../not a zip at all'


def test_missing_path_is_noop(tmp_path):
    assert verify_archive(tmp_path / 'absent.zip') is False


def test_extension_check_is_case_insensitive(tmp_path):
    bogus = tmp_path / 'GAME.ZIP'
    bogus.write_bytes(b'not a zip')
    assert verify_archive(bogus) is False
    assert not bogus.exists()
