import pytest
import yaml

from storyweaver.pipeline import YamlCollectionStore


def test_missing_library_loads_empty(tmp_path):
    assert YamlCollectionStore(tmp_path / "library.yaml").load() == []


def test_library_round_trip(tmp_path, sample_story):
    illustrated = sample_story.with_page(
        0, sample_story.pages[0].mark_illustrated("https://images.test/1.png")
    )
    store = YamlCollectionStore(tmp_path / "nested" / "library.yaml")

    store.save([illustrated])

    assert store.load() == [illustrated]
    data = yaml.safe_load(store.path.read_text(encoding="utf-8"))
    assert data["stories"][0]["id"] == "story-1"
    assert data["stories"][0]["pages"][0]["image_url"] == "https://images.test/1.png"
    assert not (tmp_path / "nested" / "library.yaml.tmp").exists()


def test_empty_file_loads_empty(tmp_path):
    path = tmp_path / "library.yaml"
    path.write_text("", encoding="utf-8")
    assert YamlCollectionStore(path).load() == []


@pytest.mark.parametrize("content", ["- just\n- a list\n", "stories: nope\n"])
def test_malformed_library_raises(tmp_path, content):
    path = tmp_path / "library.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        YamlCollectionStore(path).load()
