from coursebag import app

app(prog_name="coursebag")
