from unittest.mock import MagicMock

import pytest

from src.git_manager import GitError, GitManager
from src.page_manager import (
    create_page,
    ensure_site_repo,
    get_changes_path,
    list_pages,
    load_page,
    page_exists,
    save_page,
    validate_page_name,
)


class TestPageNames:

    def test_suffix_is_optional(self):
        assert validate_page_name(' about.html ') == 'about'
        assert validate_page_name('about') == 'about'

    @pytest.mark.parametrize('name', ['', '   ', '.html', '.hidden', 'a/b', 'what?'])
    def test_invalid_names(self, name):
        with pytest.raises(ValueError):
            validate_page_name(name)

    def test_changes_path(self, tmp_path):
        assert get_changes_path('about', tmp_path) == tmp_path / 'changes' / 'about.json'


class TestPages:

    def test_list_save_load(self, tmp_path):
        assert list_pages(tmp_path) == []
        save_page('zeta', '<p>z</p>', tmp_path)
        save_page('alpha.html', '<p>a</p>', tmp_path)
        (tmp_path / 'notes.txt').write_text('x')

        assert list_pages(tmp_path) == ['alpha', 'zeta']
        assert load_page('alpha', tmp_path) == '<p>a</p>'
        assert page_exists('zeta', tmp_path)
        assert not page_exists('missing', tmp_path)
        assert not page_exists('bad/name', tmp_path)

    def test_load_missing_page(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_page('missing', tmp_path)

    def test_list_creates_missing_dir(self, tmp_path):
        sites = tmp_path / 'sites'
        assert list_pages(sites) == []
        assert sites.is_dir()


class TestCreatePage:

    def test_creates_from_template_and_commits(self, tmp_path):
        git = MagicMock(spec=GitManager)
        result = create_page('landing-page', sites_dir=tmp_path, git_manager=git)

        assert result['success'] is True
        html = load_page('landing-page', tmp_path)
        assert '<title>Landing Page</title>' in html
        assert '<h1>Landing Page</h1>' in html
        git.commit_paths.assert_called_once_with(['landing-page.html'], 'Create page landing-page')

    def test_explicit_title(self, tmp_path):
        create_page('home', title='Welcome', sites_dir=tmp_path)
        assert '<h1>Welcome</h1>' in load_page('home', tmp_path)

    def test_existing_page(self, tmp_path):
        save_page('home', '<p>keep</p>', tmp_path)
        result = create_page('home', sites_dir=tmp_path)
        assert result['success'] is False
        assert 'already exists' in result['message']
        assert load_page('home', tmp_path) == '<p>keep</p>'

    def test_invalid_name(self, tmp_path):
        assert create_page('../etc', sites_dir=tmp_path)['success'] is False

    def test_git_failure_keeps_page(self, tmp_path):
        git = MagicMock(spec=GitManager)
        git.commit_paths.side_effect = GitError('Commit failed', 'commit')

        assert create_page('home', sites_dir=tmp_path, git_manager=git)['success'] is True
        assert page_exists('home', tmp_path)


def test_ensure_site_repo(tmp_path):
    git = MagicMock(spec=GitManager)
    sites = tmp_path / 'sites'

    assert ensure_site_repo(sites, git) is git
    assert sites.is_dir()
    git.init_repo.assert_called_once()


def test_ensure_site_repo_tolerates_git_failure(tmp_path):
    git = MagicMock(spec=GitManager)
    git.init_repo.side_effect = GitError('Init failed', 'init_repo')
    assert ensure_site_repo(tmp_path, git) is git
